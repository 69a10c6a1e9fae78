from __future__ import annotations

import random
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple

from models.item import VocabularyItem
from models.relation import Relation
from models.stats import FlashcardStatus

GOOD_REINSERT_INDEX = 8
HARD_REINSERT_INDEX = 2


@dataclass(frozen=True)
class DeckItem:
    item: VocabularyItem
    relation: Relation
    status: FlashcardStatus = FlashcardStatus.NONE


def build_deck(
    words: Iterable[VocabularyItem],
    relations: Iterable[Relation],
    rng: Optional[random.Random] = None,
) -> List[DeckItem]:
    """One card per word using a random relation of its table; shuffled."""
    rng = rng or random.Random()
    relations = list(relations)
    deck: List[DeckItem] = []
    for word in words:
        applicable = [relation for relation in relations if relation.table_id == word.table_id]
        if not applicable:
            continue
        deck.append(DeckItem(word, rng.choice(applicable), word.stats.flashcard_status))
    rng.shuffle(deck)
    return deck


def next_flashcard_status(current: FlashcardStatus, knew_it: bool) -> FlashcardStatus:
    if not knew_it:
        return FlashcardStatus.HARD
    if current in (FlashcardStatus.GOOD, FlashcardStatus.EASY):
        return FlashcardStatus.EASY
    return FlashcardStatus.GOOD


def answer_card(deck: List[DeckItem], knew_it: bool) -> Tuple[List[DeckItem], Optional[DeckItem]]:
    """Re-rank the front card: Easy to the back, Good to slot 8, Hard to slot 2."""
    if not deck:
        return [], None
    remaining = list(deck[1:])
    card = replace(deck[0], status=next_flashcard_status(deck[0].status, knew_it))
    if card.status == FlashcardStatus.EASY:
        remaining.append(card)
    elif card.status == FlashcardStatus.GOOD:
        remaining.insert(min(GOOD_REINSERT_INDEX, len(remaining)), card)
    else:
        remaining.insert(min(HARD_REINSERT_INDEX, len(remaining)), card)
    return remaining, card
