import json
import logging
import os
import unicodedata
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from errors import CatalogLoadError
from models import ExerciseCatalogEntry

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = os.path.join(os.path.dirname(__file__), "exercises.json")


class ExerciseLoader:
    """Read the bundled exercise catalog."""

    @staticmethod
    def load(path: str | None = None) -> List[ExerciseCatalogEntry]:
        """Return catalog entries sorted by name.

        Raises :class:`CatalogLoadError` when the file is missing or does not
        hold a list of exercise objects.
        """
        path = path or DEFAULT_CATALOG_PATH
        if not os.path.exists(path):
            raise CatalogLoadError(path, "file not found")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CatalogLoadError(path, str(e)) from e
        if not isinstance(data, list):
            raise CatalogLoadError(path, "expected a list of exercises")
        try:
            items = [ExerciseCatalogEntry.from_dict(row) for row in data]
        except (KeyError, TypeError, AttributeError) as e:
            raise CatalogLoadError(path, f"invalid exercise record: {e}") from e
        logger.debug("loaded %d exercises from %s", len(items), path)
        return sorted(items, key=lambda item: item.name)


class TextNorm:
    """Normalization used for catalog search keys and queries."""

    _SKIP = {"ー", " ", "\t", "_", "-"}

    @staticmethod
    def _allowed(ch: str) -> bool:
        return (
            "a" <= ch <= "z"
            or "0" <= ch <= "9"
            or "ぁ" <= ch <= "ん"
            or "一" <= ch <= "鿿"
        )

    @staticmethod
    def normalize(text: str) -> str:
        text = unicodedata.normalize("NFKC", text).casefold()
        # katakana -> hiragana
        text = "".join(
            chr(ord(ch) - 0x60) if "ァ" <= ch <= "ヶ" else ch for ch in text
        )
        text = "".join(
            ch for ch in unicodedata.normalize("NFD", text) if not unicodedata.combining(ch)
        )
        text = unicodedata.normalize("NFC", text)
        return "".join(
            ch for ch in text if ch not in TextNorm._SKIP and TextNorm._allowed(ch)
        )


@dataclass
class SearchFilters:
    muscle_group: set[str] = field(default_factory=set)
    equipment: set[str] = field(default_factory=set)
    pattern: set[str] = field(default_factory=set)

    def match(self, item: ExerciseCatalogEntry) -> bool:
        if self.muscle_group and item.muscle_group not in self.muscle_group:
            return False
        if self.equipment and item.equipment not in self.equipment:
            return False
        if self.pattern and item.pattern not in self.pattern:
            return False
        return True


@dataclass
class SearchResult:
    item: ExerciseCatalogEntry
    score: int


class ExerciseIndex:
    """Scored search over catalog names, English names and aliases."""

    NAME_WEIGHT = 8
    NAME_EN_WEIGHT = 6
    ALIAS_WEIGHT = 5

    def __init__(self, items: Iterable[ExerciseCatalogEntry]) -> None:
        self.items = list(items)
        self.by_id = {item.id: item for item in self.items}
        self.keys: list[tuple[str, str, int]] = []
        for item in self.items:
            self.keys.append((TextNorm.normalize(item.name), item.id, self.NAME_WEIGHT))
            en = TextNorm.normalize(item.name_en)
            if en:
                self.keys.append((en, item.id, self.NAME_EN_WEIGHT))
            for alias in item.aliases:
                key = TextNorm.normalize(alias)
                if key:
                    self.keys.append((key, item.id, self.ALIAS_WEIGHT))

    @staticmethod
    def levenshtein(s: str, t: str) -> int:
        if not s:
            return len(t)
        if not t:
            return len(s)
        prev_row = list(range(len(t) + 1))
        for i, a in enumerate(s, start=1):
            row = [i]
            for j, b in enumerate(t, start=1):
                row.append(
                    min(
                        prev_row[j] + 1,
                        row[j - 1] + 1,
                        prev_row[j - 1] + (0 if a == b else 1),
                    )
                )
            prev_row = row
        return prev_row[-1]

    def search(
        self, query: str, filters: Optional[SearchFilters] = None, limit: int = 20
    ) -> List[SearchResult]:
        filters = filters or SearchFilters()
        qn = TextNorm.normalize(query)
        if not qn:
            matches = [item for item in self.items if filters.match(item)]
            return [SearchResult(item, 0) for item in matches[:limit]]

        scores: dict[str, int] = {}
        for key, item_id, weight in self.keys:
            if key == qn:
                points = 100
            elif key.startswith(qn):
                points = 60
            elif qn in key:
                points = 30
            elif len(qn) <= 6:
                distance = self.levenshtein(key, qn)
                if distance <= 1:
                    points = 20
                elif distance == 2:
                    points = 10
                else:
                    continue
            else:
                continue
            scores[item_id] = scores.get(item_id, 0) + points * weight

        results = [
            SearchResult(self.by_id[item_id], score)
            for item_id, score in scores.items()
            if filters.match(self.by_id[item_id])
        ]
        results.sort(key=lambda r: (-r.score, r.item.name))
        return results[:limit]


def find_by_id(items: Iterable[ExerciseCatalogEntry], exercise_id: str) -> Optional[ExerciseCatalogEntry]:
    for item in items:
        if item.id == exercise_id:
            return item
    return None


def find_by_name(items: Iterable[ExerciseCatalogEntry], name: str) -> Optional[ExerciseCatalogEntry]:
    for item in items:
        if name in (item.name, item.name_en):
            return item
    return None
