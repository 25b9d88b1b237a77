"""
SQLite persistence layer for categories, purchase orders, line items,
assets and the audit log.

Every public method accepts an optional `tx` handle.  Without one the call
runs in its own short transaction; with one it joins the caller's unit of
work, opened via transaction():

    with db.transaction() as tx:
        db.increment_received(line_id, 2, tx=tx)
        db.create_assets(records, tx=tx)
        db.record_audit("RECEIVE_ITEMS", "PurchaseOrder", po_id, {...}, tx=tx)

transaction() takes the write lock up front (BEGIN IMMEDIATE), commits when
the block exits cleanly and rolls everything back on any exception.  WAL
mode lets readers keep working meanwhile; they see either the state before
the commit or after it.

Purchase order status values
----------------------------
  ISSUED     Created, nothing received yet.
  PARTIAL    At least one receipt recorded, some line still outstanding.
  COMPLETED  Every line item has received_qty >= quantity.
"""
import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from models.asset import Asset, Category, SubCategory
from models.purchase_order import (
    ALL_PO_STATUSES, STATUS_ISSUED, LineItem, PurchaseOrder, PurchaseOrderDraft,
)
from .exceptions import PersistenceError

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS categories (
    id           TEXT PRIMARY KEY,
    name         TEXT NOT NULL UNIQUE,
    slug         TEXT NOT NULL UNIQUE,
    description  TEXT
);

CREATE TABLE IF NOT EXISTS sub_categories (
    id           TEXT PRIMARY KEY,
    name         TEXT NOT NULL,
    slug         TEXT NOT NULL,
    category_id  TEXT NOT NULL REFERENCES categories (id) ON DELETE CASCADE,
    UNIQUE (category_id, slug)
);

CREATE TABLE IF NOT EXISTS purchase_orders (
    id            TEXT PRIMARY KEY,
    po_number     TEXT NOT NULL UNIQUE,
    date          TEXT,                       -- YYYY-MM-DD
    vendor_name   TEXT NOT NULL DEFAULT '',
    gstin         TEXT NOT NULL DEFAULT '',
    total_amount  REAL NOT NULL DEFAULT 0,
    status        TEXT NOT NULL DEFAULT 'ISSUED',
    properties    TEXT NOT NULL DEFAULT '{}', -- JSON object  { "Dept Name": "IT", ... }
    created_at    TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS line_items (
    id                 TEXT PRIMARY KEY,
    purchase_order_id  TEXT NOT NULL REFERENCES purchase_orders (id) ON DELETE CASCADE,
    sr_no              INTEGER NOT NULL,
    product_name       TEXT NOT NULL,
    quantity           REAL NOT NULL,
    uom                TEXT NOT NULL DEFAULT 'Nos',
    unit_price         REAL NOT NULL DEFAULT 0,
    gst_percent        REAL NOT NULL DEFAULT 18,
    total_amount       REAL NOT NULL DEFAULT 0,
    received_qty       REAL NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_line_items_po ON line_items (purchase_order_id, sr_no);

-- purchase_order_id is a plain back-reference: deleting a PO must not
-- delete the assets that were received against it.
CREATE TABLE IF NOT EXISTS assets (
    id                 TEXT PRIMARY KEY,
    sub_category_id    TEXT NOT NULL REFERENCES sub_categories (id),
    purchase_order_id  TEXT,
    status             TEXT NOT NULL DEFAULT 'ACTIVE',
    properties         TEXT NOT NULL DEFAULT '{}',
    created_at         TEXT NOT NULL,
    updated_at         TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_assets_sub_category ON assets (sub_category_id);
CREATE INDEX IF NOT EXISTS idx_assets_po           ON assets (purchase_order_id);

CREATE TABLE IF NOT EXISTS audit_log (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp    TEXT NOT NULL,   -- ISO-8601 UTC
    action       TEXT NOT NULL,   -- RECEIVE_ITEMS | CREATE_PO | DELETE_PO | IMPORT_ASSETS | ...
    entity_type  TEXT NOT NULL,
    entity_id    TEXT,
    details      TEXT             -- optional JSON blob with action-specific context
);

CREATE INDEX IF NOT EXISTS idx_audit_entity    ON audit_log (entity_id);
CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log (timestamp DESC);
"""

DEFAULT_CATEGORIES = [
    ("Computers",        "computers",        "Desktops, Workstations, Servers"),
    ("Laptops",          "laptops",          "Portable computers"),
    ("Printers",         "printers",         "Network and Local Printers"),
    ("Access Points",    "access-points",    "HPE Aruba, Extreme, etc."),
    ("Network Switches", "network-switches", "L2/L3 Switches"),
    ("FRTs",             "frts",             "Face Recognition Terminals"),
    ("Turnstiles",       "turnstiles",       "Physical security barriers"),
    ("Projectors",       "projectors",       "Classroom and Auditorium projectors"),
    ("AV Systems",       "av-systems",       "Audio/Video equipment"),
    ("Cabling Items",    "cabling",          "Patch cords, rolls, connectors"),
    ("UPS",              "ups",              "Uninterruptible Power Supplies"),
    ("ID Cards",         "id-cards",         "Employee/Student ID stock"),
    ("Licenses",         "licenses",         "Software Licenses"),
]


def new_id() -> str:
    return uuid.uuid4().hex


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    """Thin wrapper around an SQLite database file for procurement state."""

    def __init__(self, db_path: Path, timeout: float = 30) -> None:
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    def _connect(self, timeout: Optional[float] = None) -> sqlite3.Connection:
        # isolation_level=None: transactions are issued explicitly below.
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=timeout if timeout is not None else self.timeout,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextmanager
    def transaction(self, timeout: Optional[float] = None) -> Iterator[sqlite3.Connection]:
        """
        Open an all-or-nothing unit of work and yield its handle.

        Commits on a clean exit; rolls back and re-raises on any exception.
        sqlite3 errors are re-raised as PersistenceError.
        """
        try:
            conn = self._connect(timeout)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not open database: {exc}", str(self.db_path)) from exc
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise PersistenceError(str(exc)) from exc
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    @contextmanager
    def _conn(self, tx: Optional[sqlite3.Connection] = None) -> Iterator[sqlite3.Connection]:
        """Join the caller's unit of work, or run in a transaction of our own."""
        if tx is not None:
            try:
                yield tx
            except sqlite3.Error as exc:
                raise PersistenceError(str(exc)) from exc
        else:
            with self.transaction() as conn:
                yield conn

    def _init_schema(self) -> None:
        conn = self._connect()
        try:
            conn.executescript(_SCHEMA)
        finally:
            conn.close()
        logger.debug("Database schema ready: %s", self.db_path)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def find_category_by_name(self, name: str, tx=None) -> Optional[Category]:
        with self._conn(tx) as conn:
            row = conn.execute("SELECT * FROM categories WHERE name = ?", (name,)).fetchone()
        return Category(**dict(row)) if row else None

    def create_category(self, name: str, slug: str, description: Optional[str] = None,
                        tx=None) -> Category:
        category = Category(id=new_id(), name=name, slug=slug, description=description)
        with self._conn(tx) as conn:
            conn.execute(
                "INSERT INTO categories (id, name, slug, description) VALUES (?, ?, ?, ?)",
                (category.id, category.name, category.slug, category.description),
            )
        logger.info("Created category %r (slug=%s)", name, slug)
        return category

    def list_categories(self, tx=None) -> list[Category]:
        with self._conn(tx) as conn:
            rows = conn.execute("SELECT * FROM categories ORDER BY name").fetchall()
        return [Category(**dict(r)) for r in rows]

    def find_sub_category(self, category_id: str, slug: str, tx=None) -> Optional[SubCategory]:
        with self._conn(tx) as conn:
            row = conn.execute(
                "SELECT * FROM sub_categories WHERE category_id = ? AND slug = ?",
                (category_id, slug),
            ).fetchone()
        return SubCategory(**dict(row)) if row else None

    def create_sub_category(self, name: str, slug: str, category_id: str, tx=None) -> SubCategory:
        sub = SubCategory(id=new_id(), name=name, slug=slug, category_id=category_id)
        with self._conn(tx) as conn:
            conn.execute(
                "INSERT INTO sub_categories (id, name, slug, category_id) VALUES (?, ?, ?, ?)",
                (sub.id, sub.name, sub.slug, sub.category_id),
            )
        logger.info("Created sub-category %r (slug=%s)", name, slug)
        return sub

    def seed_default_categories(self) -> int:
        """Populate the standard IT categories when the table is empty.  Returns rows added."""
        with self._conn() as conn:
            count = conn.execute("SELECT COUNT(*) FROM categories").fetchone()[0]
            if count:
                return 0
            conn.executemany(
                "INSERT INTO categories (id, name, slug, description) VALUES (?, ?, ?, ?)",
                [(new_id(), name, slug, desc) for name, slug, desc in DEFAULT_CATEGORIES],
            )
        logger.info("Seeded %d categories", len(DEFAULT_CATEGORIES))
        return len(DEFAULT_CATEGORIES)

    # ------------------------------------------------------------------
    # Purchase orders
    # ------------------------------------------------------------------

    def find_po_by_number(self, po_number: str, include_line_items: bool = True,
                          tx=None) -> Optional[PurchaseOrder]:
        with self._conn(tx) as conn:
            row = conn.execute(
                "SELECT * FROM purchase_orders WHERE po_number = ?", (po_number,)
            ).fetchone()
            if row is None:
                return None
            po = self._po_from_row(row)
            if include_line_items:
                po.line_items = self._line_items_for(conn, po.id)
        return po

    def create_purchase_order(self, draft: PurchaseOrderDraft, tx=None) -> PurchaseOrder:
        """Persist a draft as a new ISSUED purchase order with its line items."""
        po_id = new_id()
        created_at = _now()
        po_date = (draft.date or date.today()).isoformat()
        with self._conn(tx) as conn:
            conn.execute(
                """
                INSERT INTO purchase_orders (
                    id, po_number, date, vendor_name, gstin,
                    total_amount, status, properties, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    po_id, draft.po_number, po_date, draft.vendor_name, draft.gstin,
                    draft.total_amount, STATUS_ISSUED, json.dumps(draft.properties), created_at,
                ),
            )
            conn.executemany(
                """
                INSERT INTO line_items (
                    id, purchase_order_id, sr_no, product_name, quantity,
                    uom, unit_price, gst_percent, total_amount, received_qty
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0)
                """,
                [
                    (
                        new_id(), po_id, item.sr_no, item.product_name, item.quantity,
                        item.uom, item.unit_price, item.gst_percent, item.total_amount,
                    )
                    for item in draft.line_items
                ],
            )
            po = self.find_po_by_id(po_id, tx=conn)
        logger.info("Created PO %s with %d line item(s)", draft.po_number, len(draft.line_items))
        return po

    def find_po_by_id(self, po_id: str, include_line_items: bool = True,
                      tx=None) -> Optional[PurchaseOrder]:
        with self._conn(tx) as conn:
            row = conn.execute("SELECT * FROM purchase_orders WHERE id = ?", (po_id,)).fetchone()
            if row is None:
                return None
            po = self._po_from_row(row)
            if include_line_items:
                po.line_items = self._line_items_for(conn, po_id)
        return po

    def list_purchase_orders(self, tx=None) -> list[PurchaseOrder]:
        """All purchase orders with their line items, newest date first."""
        with self._conn(tx) as conn:
            rows = conn.execute(
                "SELECT * FROM purchase_orders ORDER BY date DESC, created_at DESC"
            ).fetchall()
            orders = [self._po_from_row(r) for r in rows]
            for po in orders:
                po.line_items = self._line_items_for(conn, po.id)
        return orders

    def update_po_status(self, po_id: str, status: str, tx=None) -> bool:
        """Set the status of a purchase order.  Returns True if the record was found."""
        if status not in ALL_PO_STATUSES:
            raise ValueError(f"Invalid status {status!r}. Must be one of {ALL_PO_STATUSES}")
        with self._conn(tx) as conn:
            cur = conn.execute(
                "UPDATE purchase_orders SET status = ? WHERE id = ?", (status, po_id)
            )
            return cur.rowcount > 0

    def delete_purchase_order(self, po_id: str, tx=None) -> bool:
        """
        Delete a PO and its line items.  Assets received against it stay,
        with their purchase_order_id cleared.
        """
        with self._conn(tx) as conn:
            conn.execute(
                "UPDATE assets SET purchase_order_id = NULL, updated_at = ? "
                "WHERE purchase_order_id = ?",
                (_now(), po_id),
            )
            cur = conn.execute("DELETE FROM purchase_orders WHERE id = ?", (po_id,))
            return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Line items
    # ------------------------------------------------------------------

    def increment_received(self, line_item_id: str, delta: float,
                           purchase_order_id: Optional[str] = None, tx=None) -> None:
        """
        Add `delta` to a line item's received_qty.

        When purchase_order_id is given the line item must belong to that PO.
        Raises PersistenceError if no line item matched.
        """
        sql = "UPDATE line_items SET received_qty = received_qty + ? WHERE id = ?"
        params: list = [delta, line_item_id]
        if purchase_order_id is not None:
            sql += " AND purchase_order_id = ?"
            params.append(purchase_order_id)
        with self._conn(tx) as conn:
            cur = conn.execute(sql, params)
        if cur.rowcount == 0:
            raise PersistenceError(f"Line item {line_item_id} not found on this purchase order")

    def find_line_item(self, line_item_id: str, tx=None) -> Optional[LineItem]:
        with self._conn(tx) as conn:
            row = conn.execute("SELECT * FROM line_items WHERE id = ?", (line_item_id,)).fetchone()
        return LineItem(**dict(row)) if row else None

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def create_assets(self, records: list[dict], tx=None) -> list[str]:
        """
        Bulk insert assets.  Each record needs sub_category_id and properties;
        status and purchase_order_id are optional.  Returns the new ids.
        """
        now = _now()
        rows = [
            (
                new_id(),
                rec["sub_category_id"],
                rec.get("purchase_order_id"),
                rec.get("status", "ACTIVE"),
                json.dumps(rec.get("properties", {})),
                now,
                now,
            )
            for rec in records
        ]
        with self._conn(tx) as conn:
            conn.executemany(
                """
                INSERT INTO assets (
                    id, sub_category_id, purchase_order_id, status,
                    properties, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
        return [r[0] for r in rows]

    def list_assets(self, category_id: Optional[str] = None, tx=None) -> list[Asset]:
        """Assets with their category and sub-category names, newest first."""
        where = "WHERE c.id = ?" if category_id else ""
        params = (category_id,) if category_id else ()
        with self._conn(tx) as conn:
            rows = conn.execute(
                f"""
                SELECT a.*, s.name AS sub_category_name, c.name AS category_name
                FROM assets a
                LEFT JOIN sub_categories s ON s.id = a.sub_category_id
                LEFT JOIN categories c     ON c.id = s.category_id
                {where}
                ORDER BY a.created_at DESC, a.rowid DESC
                """,
                params,
            ).fetchall()
        return [self._asset_from_row(r) for r in rows]

    def count_assets(self, purchase_order_id: Optional[str] = None, tx=None) -> int:
        with self._conn(tx) as conn:
            if purchase_order_id is None:
                return conn.execute("SELECT COUNT(*) FROM assets").fetchone()[0]
            return conn.execute(
                "SELECT COUNT(*) FROM assets WHERE purchase_order_id = ?", (purchase_order_id,)
            ).fetchone()[0]

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    def record_audit(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[str],
        details: Optional[dict] = None,
        tx=None,
    ) -> None:
        """Append one entry to the audit log."""
        with self._conn(tx) as conn:
            conn.execute(
                """INSERT INTO audit_log (timestamp, action, entity_type, entity_id, details)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    _now(),
                    action,
                    entity_type,
                    entity_id,
                    json.dumps(details) if details is not None else None,
                ),
            )

    def get_audit_log(self, entity_id: Optional[str] = None, limit: int = 200) -> list[dict]:
        """Audit entries, oldest first; all entities unless entity_id is given."""
        where = "WHERE entity_id = ?" if entity_id else ""
        params: list = [entity_id] if entity_id else []
        params.append(limit)
        with self._conn() as conn:
            rows = conn.execute(
                f"""SELECT id, timestamp, action, entity_type, entity_id, details
                    FROM audit_log {where}
                    ORDER BY timestamp ASC, id ASC
                    LIMIT ?""",
                params,
            ).fetchall()
        entries = []
        for r in rows:
            entry = dict(r)
            entry["details"] = json.loads(entry["details"]) if entry["details"] else None
            entries.append(entry)
        return entries

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _po_from_row(row: sqlite3.Row) -> PurchaseOrder:
        data = dict(row)
        data["properties"] = json.loads(data.get("properties") or "{}")
        return PurchaseOrder(**data)

    @staticmethod
    def _line_items_for(conn: sqlite3.Connection, po_id: str) -> list[LineItem]:
        rows = conn.execute(
            "SELECT * FROM line_items WHERE purchase_order_id = ? ORDER BY sr_no",
            (po_id,),
        ).fetchall()
        return [LineItem(**dict(r)) for r in rows]

    @staticmethod
    def _asset_from_row(row: sqlite3.Row) -> Asset:
        data = dict(row)
        data["properties"] = json.loads(data.get("properties") or "{}")
        return Asset(**data)
