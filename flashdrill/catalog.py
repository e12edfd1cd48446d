import os
import logging
from typing import Dict, List, Optional, Set

import pandas as pd

from .choices import clean_text
from .models import Card

# Built-in starter decks: (id, term, translation, pronunciation hint)
BUILTIN_WORDS = {
    "pt": [
        ("1", "olá", "hello", "oh-LAH"),
        ("2", "obrigado", "thank you", "oh-bree-GAH-doo"),
        ("3", "sim", "yes", None),
        ("4", "não", "no", "now"),
        ("5", "bom dia", "good morning", None),
        ("6", "boa noite", "good night", None),
        ("7", "por favor", "please", None),
        ("8", "desculpa", "sorry / excuse me", "jesh-KOOL-pah"),
        ("9", "água", "water", "AH-gwah"),
        ("10", "comida", "food", None),
        ("11", "casa", "house / home", None),
        ("12", "amor", "love", None),
        ("13", "família", "family", "fah-MEE-lyah"),
        ("14", "amigo", "friend (m)", None),
        ("15", "amiga", "friend (f)", None),
        ("16", "tudo bem", "all good / how are you", None),
        ("17", "até logo", "see you later", None),
        ("18", "bom", "good (m)", None),
        ("19", "boa", "good (f)", None),
        ("20", "grande", "big / great", None),
        ("21", "pequeno", "small", "peh-KEH-noo"),
        ("22", "novo", "new", None),
        ("23", "velho", "old", None),
        ("24", "bebida", "drink", None),
        ("25", "café", "coffee", "kah-FEH"),
    ],
    "fr": [
        ("fr-1", "bonjour", "hello", "bon-ZHOOR"),
        ("fr-2", "merci", "thank you", "mair-SEE"),
        ("fr-3", "oui", "yes", "wee"),
        ("fr-4", "non", "no", None),
        ("fr-5", "bonsoir", "good evening", None),
        ("fr-6", "bonne nuit", "good night", None),
        ("fr-7", "s'il vous plaît", "please", "seel voo PLEH"),
        ("fr-8", "pardon", "sorry / excuse me", None),
        ("fr-9", "eau", "water", "oh"),
        ("fr-10", "nourriture", "food", None),
        ("fr-11", "maison", "house / home", None),
        ("fr-12", "amour", "love", None),
        ("fr-13", "famille", "family", "fah-MEE"),
        ("fr-14", "ami", "friend (m)", None),
        ("fr-15", "amie", "friend (f)", None),
        ("fr-16", "ça va", "all good / how are you", None),
        ("fr-17", "à bientôt", "see you soon", None),
        ("fr-18", "bon", "good (m)", None),
        ("fr-19", "bonne", "good (f)", None),
        ("fr-20", "grand", "big / tall", None),
        ("fr-21", "petit", "small", "puh-TEE"),
        ("fr-22", "nouveau", "new", None),
        ("fr-23", "vieux", "old", "vyuh"),
        ("fr-24", "boisson", "drink", None),
        ("fr-25", "café", "coffee", None),
    ],
}


class CardCatalog:
    """Cards per language, from the built-in lists or a CSV file."""

    def __init__(self, file_path: Optional[str] = None, default_language: str = "pt"):
        self.file_path = file_path
        self.default_language = default_language
        self.cards_by_language: Dict[str, List[Card]] = {}
        self._by_id: Dict[str, Card] = {}
        self._use_builtin()

    def _use_builtin(self):
        self.cards_by_language = {
            language: [
                Card(id=card_id, term=term, translation=translation, pron_hint=hint)
                for card_id, term, translation, hint in words
            ]
            for language, words in BUILTIN_WORDS.items()
        }
        self._reindex()

    def _reindex(self):
        self._by_id = {
            card.id: card
            for cards in self.cards_by_language.values()
            for card in cards
        }

    def load_data(self) -> bool:
        """Loads cards from CSV, replacing the built-in lists. Keeps them on failure."""
        if not self.file_path:
            return False
        if not os.path.exists(self.file_path):
            logging.error(f"Catalog file not found: {self.file_path}")
            return False

        try:
            df = pd.read_csv(self.file_path, encoding="utf-8-sig", dtype=str)
        except (OSError, ValueError, pd.errors.ParserError) as e:
            logging.error(f"Error loading catalog CSV: {e}")
            return False

        # Legacy column names
        column_mappings = {"pt": "term", "word": "term", "front": "term", "en": "translation", "back": "translation"}
        for old, new in column_mappings.items():
            if old in df.columns and new not in df.columns:
                df[new] = df[old]
        if "id" not in df.columns or "term" not in df.columns:
            logging.error(f"Catalog CSV needs 'id' and 'term' columns: {self.file_path}")
            return False
        for col in ("translation", "pron_hint"):
            if col not in df.columns:
                df[col] = ""
        if "language" not in df.columns:
            df["language"] = self.default_language
        df = df.fillna("")

        cards_by_language: Dict[str, List[Card]] = {}
        seen = set()
        for row in df.to_dict("records"):
            card_id = clean_text(row["id"])
            term = clean_text(row["term"])
            if not card_id or not term or card_id in seen:
                continue
            seen.add(card_id)
            language = clean_text(row["language"]) or self.default_language
            cards_by_language.setdefault(language, []).append(Card(
                id=card_id,
                term=term,
                translation=clean_text(row["translation"]),
                pron_hint=clean_text(row["pron_hint"]),
            ))

        self.cards_by_language = cards_by_language
        self._reindex()
        logging.info(f"Loaded {len(seen)} cards from {self.file_path}")
        return True

    def list_cards(self, language: str) -> List[Card]:
        return list(self.cards_by_language.get(language, []))

    def get_card(self, card_id: str) -> Optional[Card]:
        return self._by_id.get(card_id)

    def card_ids(self) -> Set[str]:
        return set(self._by_id)

    def languages(self) -> List[str]:
        return sorted(self.cards_by_language)
