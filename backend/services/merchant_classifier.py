"""
Merchant classifier: maps raw statement descriptions to clean names.

Lookup order, first hit wins:
1. exact:    case-insensitive equality with the mapping's raw pattern
2. contains: case-insensitive substring
3. regex:    raw pattern compiled case-insensitive; malformed patterns never match
4. fallback cleanup of the raw string (no category)

Mappings come from a ``MappingStore`` through a ``MappingCache`` that serves
the last good load for ``ttl_seconds`` and keeps serving it if a reload fails.
"""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from exceptions import StoreError
from models import MerchantMapping, PatternType

logger = logging.getLogger("Tally.Classifier")

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_RETRY_SECONDS = 30

NOISE_PREFIX_RE = re.compile(r"^(?:(?:PURCHASE|RECURRING|ONLINE)\s+)+", re.IGNORECASE)
STATE_CODE_RE = re.compile(r"\s+[A-Z]{2}\s*\d*$")
LONG_NUMBER_RE = re.compile(r"\s+#?\d{4,}.*$")
WHITESPACE_RE = re.compile(r"\s+")
WORD_START_RE = re.compile(r"\b\w")


@dataclass(frozen=True)
class ClassificationResult:
    clean_name: str
    category: Optional[str] = None


def title_case(text: str) -> str:
    return WORD_START_RE.sub(lambda m: m.group(0).upper(), text.lower())


def fallback_cleanup(raw_merchant: str) -> str:
    """Best-effort display name when no mapping matches.

    Deterministic and idempotent: cleaning an already-clean name returns it
    unchanged.
    """
    cleaned = NOISE_PREFIX_RE.sub("", raw_merchant.strip())
    cleaned = STATE_CODE_RE.sub("", cleaned)
    cleaned = LONG_NUMBER_RE.sub("", cleaned)
    cleaned = WHITESPACE_RE.sub(" ", cleaned).strip()
    return title_case(cleaned)


def _compile(pattern: str) -> Optional[re.Pattern]:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        logger.warning(f"Ignoring malformed regex mapping {pattern!r}: {e}")
        return None


def compile_patterns(mappings: Sequence[MerchantMapping]) -> Dict[str, re.Pattern]:
    """Compile every regex mapping once; malformed patterns are left out."""
    patterns = {}
    seen = set()
    for mapping in mappings:
        if mapping.pattern_type != PatternType.REGEX.value or mapping.raw_pattern in seen:
            continue
        seen.add(mapping.raw_pattern)
        pattern = _compile(mapping.raw_pattern)
        if pattern is not None:
            patterns[mapping.raw_pattern] = pattern
    return patterns


def match_mapping(
    raw_merchant: str,
    mappings: Sequence[MerchantMapping],
    patterns: Optional[Dict[str, re.Pattern]] = None,
) -> Optional[MerchantMapping]:
    if patterns is None:
        patterns = compile_patterns(mappings)
    upper_raw = raw_merchant.upper()

    for mapping in mappings:
        if mapping.pattern_type == PatternType.EXACT.value and mapping.raw_pattern.upper() == upper_raw:
            return mapping

    for mapping in mappings:
        if mapping.pattern_type == PatternType.CONTAINS.value and mapping.raw_pattern.upper() in upper_raw:
            return mapping

    for mapping in mappings:
        if mapping.pattern_type == PatternType.REGEX.value:
            pattern = patterns.get(mapping.raw_pattern)
            if pattern is not None and pattern.search(raw_merchant):
                return mapping

    return None


class MappingCache:
    """Time-bounded in-memory copy of the mapping table.

    A failed load is retried no sooner than ``retry_seconds`` later, so a
    broken store costs one call per window rather than one per lookup.
    ``clock`` defaults to ``time.monotonic`` and can be swapped in tests.
    """

    def __init__(
        self,
        loader: Callable[[], Sequence[MerchantMapping]],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        retry_seconds: float = DEFAULT_RETRY_SECONDS,
    ):
        self.loader = loader
        self.ttl_seconds = ttl_seconds
        self.retry_seconds = retry_seconds
        self.clock = clock
        self.mappings: Tuple[MerchantMapping, ...] = ()
        self.patterns: Dict[str, re.Pattern] = {}
        self.last_refresh: Optional[float] = None
        self.last_failure: Optional[float] = None

    @property
    def is_stale(self) -> bool:
        now = self.clock()
        if self.last_failure is not None and now - self.last_failure < self.retry_seconds:
            return False
        if self.last_refresh is None:
            return True
        return now - self.last_refresh >= self.ttl_seconds

    def expire(self):
        """Force the next read to reload."""
        self.last_refresh = None
        self.last_failure = None

    def refresh(self) -> bool:
        """Reload wholesale. On failure keep the previous copy and return False."""
        try:
            loaded = tuple(self.loader())
        except StoreError as e:
            self.last_failure = self.clock()
            logger.error(f"Error loading merchant mappings, serving {len(self.mappings)} cached: {e}")
            return False
        self.mappings = loaded
        self.patterns = compile_patterns(loaded)
        self.last_refresh = self.clock()
        self.last_failure = None
        logger.debug(f"Loaded {len(loaded)} merchant mappings")
        return True

    def get(self) -> Tuple[MerchantMapping, ...]:
        if self.is_stale:
            self.refresh()
        return self.mappings


class MerchantClassifier:
    def __init__(
        self,
        store,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        retry_seconds: float = DEFAULT_RETRY_SECONDS,
    ):
        self.store = store
        self.cache = MappingCache(store.list_all, ttl_seconds=ttl_seconds, clock=clock, retry_seconds=retry_seconds)

    def classify(self, raw_merchant: str) -> ClassificationResult:
        mappings = self.cache.get()
        mapping = match_mapping(raw_merchant, mappings, self.cache.patterns)
        if mapping is not None:
            return ClassificationResult(clean_name=mapping.clean_name, category=mapping.category)
        return ClassificationResult(clean_name=fallback_cleanup(raw_merchant))

    def classify_many(self, raw_merchants: Sequence[str]) -> List[ClassificationResult]:
        return [self.classify(raw) for raw in raw_merchants]

    def add_mapping(
        self,
        raw_pattern: str,
        clean_name: str,
        category: Optional[str] = None,
        pattern_type: PatternType = PatternType.CONTAINS,
    ) -> MerchantMapping:
        """Write a mapping through to the store, then reload the cache.

        Raises:
            StoreError: the write failed; the cache is left as it was.
        """
        mapping = self.store.insert(raw_pattern, clean_name, category, pattern_type)
        self.cache.expire()
        self.cache.refresh()
        return mapping


_classifier = None


def get_classifier() -> MerchantClassifier:
    """Get or create the process-wide classifier (FastAPI dependency)."""
    global _classifier
    if _classifier is None:
        from config import settings
        from database import SessionLocal
        from services.mapping_store import MappingStore

        _classifier = MerchantClassifier(
            MappingStore(SessionLocal),
            ttl_seconds=settings.MAPPING_CACHE_TTL_SECONDS,
            retry_seconds=settings.MAPPING_CACHE_RETRY_SECONDS,
        )
        logger.info(f"Merchant classifier initialized (ttl={settings.MAPPING_CACHE_TTL_SECONDS}s)")
    return _classifier
