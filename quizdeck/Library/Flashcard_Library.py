# Flashcard_Library.py
# Description: Service layer for flashcard decks
#
# Imports
from typing import Any, Dict, List, Mapping, Optional, Union
#
# 3rd-Party Imports
from loguru import logger
#
# Local Imports
from quizdeck.DB.local_store import LocalCollection
from quizdeck.schemas import FlashCardDeck, FlashCardDeckData
from quizdeck.Utils.common import new_record_id, utc_now_iso
#
########################################################################################################################
#
# Functions:


def _stamp_cards(cards: List[Dict[str, Any]], deck_id: str, now: str) -> List[Dict[str, Any]]:
    """Gives every card an id, points it at its deck and refreshes `updatedAt`."""
    stamped = []
    for index, card in enumerate(cards):
        stamped.append({
            **card,
            "id": card.get("id") or f"{new_record_id('card')}-{index}",
            "deckId": deck_id,
            "createdAt": card.get("createdAt") or now,
            "updatedAt": now,
        })
    return stamped


class FlashcardLibrary:

    def __init__(self, collection: LocalCollection):
        self.collection = collection

    async def list_decks(self) -> List[Dict[str, Any]]:
        return await self.collection.get_all()

    async def get_deck(self, deck_id: str) -> Optional[Dict[str, Any]]:
        return next((d for d in await self.collection.get_all() if d["id"] == deck_id), None)

    async def create_deck(self, deck_data: Union[FlashCardDeckData, Mapping[str, Any]]) -> Dict[str, Any]:
        data = deck_data if isinstance(deck_data, FlashCardDeckData) else FlashCardDeckData.model_validate(deck_data)
        now = utc_now_iso()
        deck_id = new_record_id("deck")
        record = data.to_record()
        record["cards"] = _stamp_cards(record.get("cards", []), deck_id, now)
        deck = FlashCardDeck.model_validate({**record, "id": deck_id, "createdAt": now, "updatedAt": now}).to_record()

        decks = await self.collection.get_all()
        decks.append(deck)
        await self.collection.set_all(decks)
        logger.info(f"Created deck '{deck['name']}' ({deck_id}) with {len(deck['cards'])} card(s)")
        return deck

    async def update_deck(self, deck_id: str, deck_data: Union[FlashCardDeckData, Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
        """Replaces a deck's content; returns None when the deck does not exist."""
        decks = await self.collection.get_all()
        existing = next((d for d in decks if d["id"] == deck_id), None)
        if existing is None:
            logger.warning(f"Cannot update deck '{deck_id}': not found")
            return None
        data = deck_data if isinstance(deck_data, FlashCardDeckData) else FlashCardDeckData.model_validate(deck_data)
        now = utc_now_iso()
        record = data.to_record()
        record["cards"] = _stamp_cards(record.get("cards", []), deck_id, now)
        updated = {**existing, **record, "updatedAt": now}
        await self.collection.set_all([updated if d["id"] == deck_id else d for d in decks])
        return updated

    async def delete_deck(self, deck_id: str) -> bool:
        decks = await self.collection.get_all()
        remaining = [d for d in decks if d["id"] != deck_id]
        if len(remaining) == len(decks):
            return False
        await self.collection.set_all(remaining)
        logger.info(f"Deleted deck {deck_id}")
        return True

#
# End of Flashcard_Library.py
########################################################################################################################
