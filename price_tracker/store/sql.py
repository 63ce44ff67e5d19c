# price_tracker/store/sql.py
import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Mapping, Optional

from sqlalchemy.orm import Session

from price_tracker.core.db import Base, make_engine, make_session_factory
from price_tracker.models import Alert, HistoryEntry, Product, Source, new_product_id, utcnow
from price_tracker.models.orm import AlertRow, HistoryRow, ProductRow
from price_tracker.store.base import PriceStore, split_patch

logger = logging.getLogger(__name__)


def _url_col(source: Source) -> str:
    return f"{source.value}_url"


def _price_col(source: Source) -> str:
    return f"{source.value}_price"


def _to_product(row: ProductRow) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        category=row.category,
        source_urls={s: getattr(row, _url_col(s)) for s in Source},
        source_prices={s: getattr(row, _price_col(s)) for s in Source},
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_entry(row: HistoryRow) -> HistoryEntry:
    prices = {}
    for s in Source:
        value = getattr(row, _price_col(s))
        if value is not None:
            prices[s] = value
    return HistoryEntry(timestamp=row.recorded_at, prices=prices)


def _to_alert(row: AlertRow) -> Alert:
    return Alert(
        id=row.id,
        product_id=row.product_id,
        product_name=row.product_name,
        source=Source(row.source),
        old_price=row.old_price,
        new_price=row.new_price,
        percent_change=row.percent_change,
        created_at=row.created_at,
    )


class SqlStore(PriceStore):
    """SQLAlchemy-backed store; one session and one transaction per call."""

    def __init__(self, database_url: str):
        self.engine = make_engine(database_url)
        self._sessions = make_session_factory(self.engine)
        Base.metadata.create_all(self.engine)
        logger.info("SQL store ready on %s", self.engine.url.render_as_string(hide_password=True))

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._sessions()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _latest_row(self, db: Session, product_id: str) -> Optional[HistoryRow]:
        return (
            db.query(HistoryRow)
            .filter(HistoryRow.product_id == product_id)
            .order_by(HistoryRow.id.desc())
            .first()
        )

    # ---------- products ----------

    def create_product(self, name, category=None, source_urls=None, source_prices=None) -> Product:
        now = utcnow()
        urls = {Source(k): v for k, v in (source_urls or {}).items()}
        prices = {Source(k): v for k, v in (source_prices or {}).items()}
        row = ProductRow(id=new_product_id(), name=name, category=category, created_at=now)
        for s in Source:
            setattr(row, _url_col(s), urls.get(s))
            setattr(row, _price_col(s), prices.get(s))

        with self._session() as db:
            db.add(row)
            if any(p is not None for p in prices.values()):
                entry = HistoryRow(product_id=row.id, recorded_at=now)
                for s in Source:
                    setattr(entry, _price_col(s), prices.get(s))
                db.add(entry)
            db.flush()
            return _to_product(row)

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._session() as db:
            row = db.get(ProductRow, product_id)
            return _to_product(row) if row else None

    def list_products(self) -> List[Product]:
        with self._session() as db:
            rows = db.query(ProductRow).order_by(ProductRow.id).all()
            return [_to_product(r) for r in rows]

    def update_product(self, product_id: str, patch: Mapping[str, Any]) -> Optional[Product]:
        changes = split_patch(patch)
        with self._session() as db:
            row = db.get(ProductRow, product_id)
            if row is None:
                return None
            if "name" in changes:
                row.name = changes["name"]
            if "category" in changes:
                row.category = changes["category"]
            for s, url in changes.get("source_urls", {}).items():
                setattr(row, _url_col(s), url)
            for s, price in changes.get("source_prices", {}).items():
                setattr(row, _price_col(s), price)
            row.updated_at = utcnow()
            db.flush()
            return _to_product(row)

    def set_source_price(self, product_id: str, source: Source, price: float) -> Optional[Product]:
        with self._session() as db:
            row = db.get(ProductRow, product_id)
            if row is None:
                return None
            setattr(row, _price_col(source), price)
            row.updated_at = utcnow()
            db.flush()
            return _to_product(row)

    def delete_product(self, product_id: str) -> bool:
        with self._session() as db:
            row = db.get(ProductRow, product_id)
            if row is None:
                return False
            # history rows go with it via the relationship cascade, same transaction
            db.delete(row)
            return True

    # ---------- history ----------

    def history(self, product_id: str) -> List[HistoryEntry]:
        with self._session() as db:
            rows = (
                db.query(HistoryRow)
                .filter(HistoryRow.product_id == product_id)
                .order_by(HistoryRow.id)
                .all()
            )
            return [_to_entry(r) for r in rows]

    def latest_history_entry(self, product_id: str) -> Optional[HistoryEntry]:
        with self._session() as db:
            row = self._latest_row(db, product_id)
            return _to_entry(row) if row else None

    def add_history_entry(self, product_id: str, entry: HistoryEntry) -> bool:
        with self._session() as db:
            if db.get(ProductRow, product_id) is None:
                return False
            row = HistoryRow(product_id=product_id, recorded_at=entry.timestamp)
            for s, price in entry.prices.items():
                setattr(row, _price_col(Source(s)), price)
            db.add(row)
            return True

    def merge_into_latest_entry(self, product_id: str, source: Source, price: float) -> bool:
        with self._session() as db:
            row = self._latest_row(db, product_id)
            if row is None:
                return False
            setattr(row, _price_col(source), price)
            return True

    # ---------- alerts ----------

    def add_alert(self, alert: Alert) -> None:
        with self._session() as db:
            db.add(
                AlertRow(
                    id=alert.id,
                    product_id=alert.product_id,
                    product_name=alert.product_name,
                    source=alert.source.value,
                    old_price=alert.old_price,
                    new_price=alert.new_price,
                    percent_change=alert.percent_change,
                    created_at=alert.created_at,
                )
            )

    def list_alerts(self) -> List[Alert]:
        with self._session() as db:
            rows = db.query(AlertRow).order_by(AlertRow.created_at, AlertRow.id).all()
            return [_to_alert(r) for r in rows]

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        with self._session() as db:
            row = db.get(AlertRow, alert_id)
            return _to_alert(row) if row else None

    def delete_alert(self, alert_id: str) -> bool:
        with self._session() as db:
            row = db.get(AlertRow, alert_id)
            if row is None:
                return False
            db.delete(row)
            return True

    def clear_alerts(self) -> int:
        with self._session() as db:
            return db.query(AlertRow).delete()

    def counts(self):
        with self._session() as db:
            return {
                "products": db.query(ProductRow).count(),
                "alerts": db.query(AlertRow).count(),
            }

    def close(self) -> None:
        self.engine.dispose()
