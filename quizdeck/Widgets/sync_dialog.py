# sync_dialog.py
#
# Imports
import asyncio
from typing import Dict, List, Optional
#
# 3rd-party Libraries
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label, Static
#
# Local Imports
from quizdeck.schemas import SyncAction
from quizdeck.Sync.sync_manager import SyncDecision
#
########################################################################################################################
#
# Classes:

HELP_TEXT_BOTH = ("Merge: Combines both datasets, keeping unique items from each.\n"
                  "Load Cloud: Replaces your local data with cloud data.\n"
                  "Upload Local: Replaces cloud data with your local data.")


def button_labels(decision: SyncDecision) -> Dict[SyncAction, str]:
    """Button text per offered action; the wording depends on which side holds data."""
    if decision.is_new_user:
        return {"upload": "Upload Local Data to Cloud", "cancel": "Skip (Keep Local Only)"}
    if decision.has_local_data and decision.has_cloud_data:
        return {
            "merge": "Merge Local and Cloud Data",
            "download": "Load Cloud Data (Replace Local)",
            "upload": "Upload Local Data (Replace Cloud)",
            "cancel": "Cancel",
        }
    return {"download": "Load Cloud Data", "upload": "Upload Local Data to Cloud", "cancel": "Cancel"}


class SyncDialogScreen(ModalScreen[SyncAction]):
    """Asks the user how to reconcile local and cloud data; dismisses with the chosen action."""

    BINDINGS = [Binding("escape", "cancel_sync", "Cancel")]
    CSS = """
    SyncDialogScreen { align: center middle; }
    #sync-dialog { width: 60; height: auto; border: thick $primary-background-lighten-2; background: $surface; padding: 1 2; }
    #sync-title { text-style: bold; width: 100%; margin-bottom: 1; }
    #sync-message { width: 100%; margin-bottom: 1; color: $text-muted; }
    .sync-action { width: 100%; margin-bottom: 1; }
    #sync-help { width: 100%; margin-top: 1; color: $text-muted; }
    """

    def __init__(self, decision: SyncDecision, name: Optional[str] = None, id: Optional[str] = None,
                 classes: Optional[str] = None) -> None:
        super().__init__(name, id, classes)
        self.decision = decision

    @property
    def title_text(self) -> str:
        return "Welcome! Sync Your Data" if self.decision.is_new_user else "Sync Your Data"

    @property
    def message_text(self) -> str:
        if self.decision.is_new_user:
            return "We found local data on this device. Would you like to save it to the cloud?"
        return "We found data both locally and in the cloud. How would you like to proceed?"

    def compose(self) -> ComposeResult:
        labels = button_labels(self.decision)
        options: List[SyncAction] = list(self.decision.options)
        with Vertical(id="sync-dialog"):
            yield Label(self.title_text, id="sync-title")
            yield Static(self.message_text, id="sync-message")
            for index, action in enumerate(options):
                variant = "primary" if index == 0 and action != "cancel" else "default"
                yield Button(labels.get(action, action.title()), variant=variant,
                             id=f"sync-{action}", classes="sync-action")
            if "merge" in options:
                yield Static(HELP_TEXT_BOTH, id="sync-help")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""
        if button_id.startswith("sync-"):
            event.stop()
            self.dismiss(button_id[len("sync-"):])

    def action_cancel_sync(self) -> None:
        self.dismiss("cancel")


def make_textual_prompt(app: App):
    """Returns a `SyncManager.run` prompt that shows `SyncDialogScreen` in `app` and waits for the choice."""

    async def prompt(decision: SyncDecision) -> Optional[SyncAction]:
        future: asyncio.Future = asyncio.get_running_loop().create_future()

        def _on_dismiss(action: Optional[SyncAction]) -> None:
            if not future.done():
                future.set_result(action)

        await app.push_screen(SyncDialogScreen(decision, id="sync_dialog"), _on_dismiss)
        return await future

    return prompt

#
# End of sync_dialog.py
########################################################################################################################
