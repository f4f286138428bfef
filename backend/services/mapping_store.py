"""Merchant mapping store backed by the ``merchant_mappings`` table."""
import logging
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from exceptions import StoreError
from models import MerchantMapping, PatternType

logger = logging.getLogger("Tally.Store.Mappings")

# (raw_pattern, clean_name, category, pattern_type)
DEFAULT_MAPPINGS = [
    # Transportation
    ("MBTA", "MBTA", "Transportation", PatternType.CONTAINS),
    ("UBER", "Uber", "Transportation", PatternType.CONTAINS),
    ("LYFT", "Lyft", "Transportation", PatternType.CONTAINS),
    ("ZIPCAR", "Zipcar", "Transportation", PatternType.CONTAINS),
    # Food & Dining
    ("STARBUCKS", "Starbucks", "Coffee", PatternType.CONTAINS),
    ("DUNKIN", "Dunkin", "Coffee", PatternType.CONTAINS),
    ("DOORDASH", "DoorDash", "Food Delivery", PatternType.CONTAINS),
    ("TATTE", "Tatte Bakery", "Coffee", PatternType.CONTAINS),
    ("SAIGON", "New Saigon Restaurant", "Restaurant", PatternType.CONTAINS),
    ("SWEETGREEN", "Sweetgreen", "Restaurant", PatternType.CONTAINS),
    # Shopping
    ("TARGET", "Target", "Shopping", PatternType.CONTAINS),
    (r"STOP.*SHOP", "Stop & Shop", "Groceries", PatternType.REGEX),
    ("WALGREENS", "Walgreens", "Pharmacy", PatternType.CONTAINS),
    ("CVS", "CVS", "Pharmacy", PatternType.CONTAINS),
    # Entertainment & Services
    ("SPOTIFY", "Spotify", "Entertainment", PatternType.CONTAINS),
    ("NETFLIX", "Netflix", "Entertainment", PatternType.CONTAINS),
    ("AMAZON", "Amazon", "Shopping", PatternType.CONTAINS),
]


class MappingStore:
    """List and insert merchant mappings.

    Opens a short-lived session per call, so a single store can back a
    classifier shared across requests.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def list_all(self) -> List[MerchantMapping]:
        """All mappings ordered by raw pattern."""
        db = self.session_factory()
        try:
            rows = db.query(MerchantMapping).order_by(MerchantMapping.raw_pattern).all()
            # Rows outlive the session inside the classifier cache
            for row in rows:
                db.expunge(row)
            return rows
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load merchant mappings: {e}") from e
        finally:
            db.close()

    def insert(
        self,
        raw_pattern: str,
        clean_name: str,
        category: Optional[str] = None,
        pattern_type: PatternType = PatternType.CONTAINS,
    ) -> MerchantMapping:
        db = self.session_factory()
        try:
            mapping = MerchantMapping(
                raw_pattern=raw_pattern,
                clean_name=clean_name,
                category=category,
                pattern_type=PatternType(pattern_type).value,
            )
            db.add(mapping)
            db.commit()
            db.refresh(mapping)
            db.expunge(mapping)
            logger.info(f"Added {mapping.pattern_type} mapping {raw_pattern!r} -> {clean_name!r}")
            return mapping
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(f"Failed to add merchant mapping: {e}") from e
        finally:
            db.close()

    def seed_defaults(self) -> int:
        """Insert the built-in mappings when the table is empty. Returns rows added."""
        db = self.session_factory()
        try:
            if db.query(MerchantMapping).first() is not None:
                return 0
            for raw_pattern, clean_name, category, pattern_type in DEFAULT_MAPPINGS:
                db.add(MerchantMapping(
                    raw_pattern=raw_pattern,
                    clean_name=clean_name,
                    category=category,
                    pattern_type=pattern_type.value,
                ))
            db.commit()
            logger.info(f"Seeded {len(DEFAULT_MAPPINGS)} default merchant mappings")
            return len(DEFAULT_MAPPINGS)
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(f"Failed to seed merchant mappings: {e}") from e
        finally:
            db.close()
