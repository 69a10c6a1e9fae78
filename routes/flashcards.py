import random
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from db.database import get_db
from db.stores import SqliteItemStore
from models.flashcard import FlashcardAnswer, FlashcardStart
from models.item import VocabularyItem
from models.relation import Relation
from utils.flashcards import DeckItem, answer_card, build_deck
from utils.stats import recompute_stats

router = APIRouter()


@dataclass
class FlashcardDeck:
    words: List[VocabularyItem]
    relations: List[Relation]
    rng: random.Random
    cards: List[DeckItem] = field(default_factory=list)
    initial_size: int = 0

    def reset(self) -> None:
        self.cards = build_deck(self.words, self.relations, self.rng)
        self.initial_size = len(self.cards)


DECKS: Dict[str, FlashcardDeck] = {}


def _card_payload(card: Optional[DeckItem], show_answer: bool = False) -> Optional[dict]:
    if card is None:
        return None
    payload = {
        "item_id": card.item.id,
        "relation": card.relation.name,
        "status": card.status.value,
        "question": [
            {"column": col, "value": card.item.display_value(col)} for col in card.relation.question_cols
        ],
        "answer": [
            {"column": col, "value": card.item.display_value(col)} for col in card.relation.answer_cols
        ],
    }
    if not show_answer:
        payload.pop("answer")
    return payload


def _deck_payload(deck_id: str, deck: FlashcardDeck) -> dict:
    return {
        "deck_id": deck_id,
        "remaining": len(deck.cards),
        "initial_size": deck.initial_size,
        "card": _card_payload(deck.cards[0] if deck.cards else None, show_answer=True),
    }


def _require_deck(deck_id: str) -> FlashcardDeck:
    deck = DECKS.get(deck_id)
    if not deck:
        raise HTTPException(status_code=404, detail="Deck not found")
    return deck


@router.post("/decks", status_code=status.HTTP_201_CREATED)
async def start_deck(payload: FlashcardStart, conn = Depends(get_db)):
    store = SqliteItemStore(conn)
    words = store.list_items(payload.table_ids, payload.word_ids or None)
    selected = set(payload.relation_ids)
    relations = [r for r in store.list_relations(payload.table_ids) if r.id in selected]
    deck = FlashcardDeck(words=words, relations=relations, rng=random.Random(payload.seed))
    deck.reset()
    if not deck.cards:
        raise HTTPException(status_code=400, detail="No selected relation matches these words")
    # one open deck at a time; starting a new one drops the previous
    DECKS.clear()
    deck_id = uuid.uuid4().hex
    DECKS[deck_id] = deck
    return _deck_payload(deck_id, deck)


@router.get("/decks/{deck_id}")
async def get_deck(deck_id: str):
    return _deck_payload(deck_id, _require_deck(deck_id))


@router.post("/decks/{deck_id}/answer")
async def answer(deck_id: str, payload: FlashcardAnswer, conn = Depends(get_db)):
    """Re-rank the front card and persist its flashcard status."""
    deck = _require_deck(deck_id)
    if not deck.cards:
        raise HTTPException(status_code=409, detail="Deck is empty")
    deck.cards, card = answer_card(deck.cards, payload.knew_it)
    store = SqliteItemStore(conn)
    current = store.list_items(item_ids=[card.item.id])
    if current:
        counters = current[0].stats.counters()
        counters.flashcard_status = card.status
        store.update_stats(card.item.id, recompute_stats(counters))
        conn.commit()
    return {"answered": _card_payload(card), **_deck_payload(deck_id, deck)}


@router.post("/decks/{deck_id}/reset")
async def reset_deck(deck_id: str):
    deck = _require_deck(deck_id)
    deck.reset()
    return _deck_payload(deck_id, deck)


@router.delete("/decks/{deck_id}", status_code=status.HTTP_204_NO_CONTENT)
async def end_deck(deck_id: str):
    _require_deck(deck_id)
    DECKS.pop(deck_id, None)
