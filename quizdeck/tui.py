# tui.py
# Description: Textual front end: signs in from config, asks the sync question and shows the sync status
#
# Imports
from typing import Optional
#
# 3rd-Party Libraries
from loguru import logger
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, Static
#
# Local Imports
from quizdeck.app import StudyApp
from quizdeck.auth import AuthContext
from quizdeck.config import auth_from_config
from quizdeck.Sync.exceptions import SyncError
from quizdeck.Widgets.sync_dialog import make_textual_prompt
#
########################################################################################################################
#
# Classes:


class QuizdeckApp(App[None]):
    """Hosts a `StudyApp` for one signed-in user and runs its initial sync on mount."""

    TITLE = "quizdeck"
    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit App", show=True),
        Binding("s", "sync_now", "Sync Now", show=True),
    ]
    CSS = """
    #sync-status { padding: 1 2; }
    """

    def __init__(self, study: StudyApp, auth: AuthContext, **kwargs) -> None:
        super().__init__(**kwargs)
        self.study = study
        self.auth = auth

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("Starting...", id="sync-status")
        yield Footer()

    def on_mount(self) -> None:
        self.run_worker(self._start_sync(), exclusive=True, group="sync")

    async def on_unmount(self) -> None:
        await self.study.close()
        logger.info("--- quizdeck unmounted ---")

    def status_text(self) -> str:
        if not self.study.auth.is_signed_in:
            return "Not signed in. Set [account] user_id in the config to sync."
        if not self.study.auth.can_sync:
            return "Cloud sync is off; data stays on this device."
        if self.study.manager is not None and self.study.manager.state.sync_complete:
            last_sync = self.study.last_sync
            when = last_sync.strftime("%Y-%m-%d %H:%M:%S") if last_sync else "pending"
            return f"Synced as {self.study.auth.display_name or self.study.auth.user_id}. Last sync: {when}"
        return "Initial sync not completed."

    def _show_status(self, text: Optional[str] = None) -> None:
        self.query_one("#sync-status", Static).update(text or self.status_text())

    async def _start_sync(self) -> None:
        if not self.auth.is_signed_in:
            self._show_status()
            return
        try:
            await self.study.sign_in(self.auth, make_textual_prompt(self))
        except SyncError as e:
            logger.error(f"Initial sync failed: {e}")
            self.notify(e.user_message, severity="error")
        self._show_status()

    async def action_sync_now(self) -> None:
        if await self.study.sync_now():
            self.notify("All changes synced.", severity="information")
        else:
            self.notify("Nothing was synced. Check the log for details.", severity="warning")
        self._show_status()


def main() -> None:
    study = StudyApp.from_config()
    app_instance = QuizdeckApp(study, auth_from_config())
    try:
        app_instance.run()
    except Exception:
        logger.exception("--- CRITICAL ERROR DURING app.run() ---")
        raise


if __name__ == "__main__":
    main()

#
# End of tui.py
########################################################################################################################
