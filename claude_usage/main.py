"""
claude-usage: fetch claude.ai session and weekly usage limits headlessly.

Usage: claude-usage [--json] [--cache]
       claude-usage setup
"""

import asyncio
import sys
from datetime import datetime, timezone
from typing import Callable, Optional

from rich.console import Console
from rich.prompt import Prompt
from rich.text import Text

from claude_usage.browser.fetcher import UsageFetcher
from claude_usage.browser.session_state import SessionState
from claude_usage.cache.writer import CacheWriter
from claude_usage.config import Settings, settings
from claude_usage.credentials.keychain import (
    ORG_ID_ACCOUNT,
    SESSION_KEY_ACCOUNT,
    CredentialStore,
    KeychainStore,
    load_credentials,
)
from claude_usage.display import print_usage, render_json
from claude_usage.errors import BODY_PREFIX_LENGTH, NoCredentialsError, SessionExpiredError, StoreError, classify_error
from claude_usage.observability.logger import get_logger, setup_logging

log = get_logger("main")

FETCH_FLAGS = ("--json", "--cache")

HELP_TEXT = """
claude-usage - Fetch claude.ai session and weekly usage limits

USAGE:
  claude-usage [--json] [--cache]
  claude-usage setup
  claude-usage --help

COMMANDS:
  (default)   Display usage progress bars for all active limit buckets
  setup       Interactively store sessionKey and orgId in macOS Keychain
  --json      Print raw API response as JSON (for scripting)
  --cache     Write usage snapshot to {cache_path} (for statusline poller)

CREDENTIALS:
  Stored in macOS Keychain under service "{service}":
    session-key   claude.ai sessionKey cookie (~30-day validity)
    org-id        claude.ai organization UUID

  Run 'claude-usage setup' when credentials are missing or expired.

ENVIRONMENT:
  PROJECT_HOME  Base directory for runtime files (default: ~/my-project)

EXAMPLES:
  claude-usage            # Check usage (human-readable)
  claude-usage --json     # Raw JSON output
  claude-usage --cache    # Write cache file (used by poller)
  claude-usage setup      # First-time setup or refresh expired session
"""

SETUP_STEPS = (
    "1. Open {base_url}/settings/usage in your browser",
    "2. Open DevTools -> Network -> reload the page",
    "3. Find the request to /api/organizations/.../usage",
    "4. From Application -> Cookies -> claude.ai, copy:",
)

SESSION_EXPIRED_STEPS = (
    "[SESSION EXPIRED] Run: claude-usage setup\n"
    "Steps: open {base_url}/settings/usage -> DevTools -> Application\n"
    "       -> Cookies -> claude.ai -> copy sessionKey value"
)


class UsageApp:
    def __init__(
        self,
        settings: Settings,
        store: CredentialStore,
        fetcher: Optional[UsageFetcher] = None,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings
        self.store = store
        self.session_state = SessionState(settings.storage_state_path, settings.storage_state_ttl_seconds)
        self.cache = CacheWriter(settings.cache_path)
        self.fetcher = fetcher or UsageFetcher(settings, self.session_state)
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def help(self) -> int:
        text = HELP_TEXT.format(cache_path=self.settings.cache_path, service=self.settings.keychain_service)
        self.console.print(text, markup=False)
        return 0

    def usage_error(self, argument: str) -> int:
        self._error(f"Unknown argument: {argument}")
        self.err_console.print("Usage: claude-usage [--json] [--cache] | setup | --help", markup=False)
        return 1

    def setup(self) -> int:
        self.console.print("\n[bold]claude-usage setup[/bold]\n")
        for step in SETUP_STEPS:
            self.console.print(step.format(base_url=self.settings.base_url), markup=False)
        self.console.print()

        try:
            session_key = Prompt.ask(
                "   sessionKey cookie value", password=True, default="", show_default=False, console=self.console
            ).strip()
            org_id = Prompt.ask(
                "   Organization ID (from the URL path)", default="", show_default=False, console=self.console
            ).strip()
        except (EOFError, KeyboardInterrupt):
            session_key = org_id = ""

        if not session_key or not org_id:
            self._error("Aborted - both values required.")
            return 1

        try:
            self.store.set(SESSION_KEY_ACCOUNT, session_key)
            self.store.set(ORG_ID_ACCOUNT, org_id)
        except StoreError as e:
            log.error("setup_store_failed", error=str(e))
            self._error(str(e))
            return 1

        # Old browser state belongs to the old sessionKey
        if self.session_state.invalidate():
            self.console.print("  Cleared stale browser state.")

        self.console.print(
            f'\n[green]✓[/green] Credentials stored in macOS Keychain under service "{self.settings.keychain_service}"'
        )
        self.console.print("  sessionKey expires in ~30 days - re-run setup to refresh.\n")
        return 0

    async def show(self, cache_mode: bool = False, json_mode: bool = False) -> int:
        credentials = load_credentials(self.store)
        if credentials is None:
            return self._report_failure(NoCredentialsError(), cache_mode)

        try:
            snapshot = await self.fetcher.fetch(credentials.org_id, credentials.session_key)
        except Exception as e:
            log.error("usage_fetch_failed", error=str(e), error_type=type(e).__name__)
            return self._report_failure(e, cache_mode)

        if cache_mode:
            try:
                self.cache.write_success(snapshot)
            except OSError as e:
                return self._cache_write_failed(e)
            self.console.print(f"Cached to {self.settings.cache_path}", markup=False)
        elif json_mode:
            self.console.out(render_json(snapshot), highlight=False)
        else:
            print_usage(self.console, snapshot, self.clock())
        return 0

    def _report_failure(self, exc: Exception, cache_mode: bool) -> int:
        tag = classify_error(exc)
        if cache_mode:
            detail = None if tag != "fetch_error" else str(exc)[:BODY_PREFIX_LENGTH]
            try:
                self.cache.write_error(tag, detail)
            except OSError as e:
                self._cache_write_failed(e)

        if isinstance(exc, NoCredentialsError):
            self._error(str(exc))
        elif isinstance(exc, SessionExpiredError):
            if cache_mode:
                self._error(SESSION_EXPIRED_STEPS.format(base_url=self.settings.base_url))
            else:
                self._error("Session expired. Run: claude-usage setup")
        elif cache_mode:
            self._error(f"[FETCH ERROR] {exc}")
        else:
            self._error(f"Error: {exc}")
        return 1

    def _cache_write_failed(self, exc: OSError) -> int:
        log.error("cache_write_failed", path=self.settings.cache_path, error=str(exc))
        self._error(f"[CACHE ERROR] Could not write {self.settings.cache_path}: {exc}")
        return 1

    def _error(self, message: str):
        self.err_console.print(Text(message, style="red"))


def main(argv: Optional[list[str]] = None, app: Optional[UsageApp] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    app = app or UsageApp(settings, KeychainStore(settings.keychain_service))
    setup_logging(app.settings.log_level)

    if args and args[0] in ("--help", "-h"):
        return app.help()
    if args and args[0] == "setup":
        return app.setup()

    unknown = [a for a in args if a not in FETCH_FLAGS]
    if unknown:
        return app.usage_error(unknown[0])

    return asyncio.run(app.show(cache_mode="--cache" in args, json_mode="--json" in args))


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
