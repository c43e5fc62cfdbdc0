from __future__ import annotations

import os
import sqlite3
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from common.utils import now_utc_iso
from pydantic import BaseModel

from store.models import (
    FinanceCompany,
    FinanceLoanOption,
    FinanceProduct,
    LhNotice,
    LoanRateChange,
    Product,
    ShAnnouncement,
    SyncReport,
    SyncRun,
    YouthPolicy,
)

DEFAULT_DB_PATH = os.path.join(tempfile.gettempdir(), "ynest", "listings.sqlite3")

PRODUCT_COLUMNS = ("type", "name", "provider", "detail_url")
COMPANY_COLUMNS = ("company_code", "name", "homepage", "contact")
FINANCE_PRODUCT_COLUMNS = (
    "product_id",
    "company_code",
    "product_type",
    "join_condition",
    "interest_rate",
    "min_deposit",
)
LOAN_OPTION_COLUMNS = (
    "finance_product_id",
    "lend_rate_min",
    "lend_rate_max",
    "lend_rate_avg",
    "prev_lend_rate_avg",
    "repayment_type",
    "rate_type",
    "collateral_type",
    "credit_rate_type",
    "credit_rate_type_name",
    "credit_grade_1",
    "credit_grade_4",
    "credit_grade_5",
    "credit_grade_6",
    "credit_grade_10",
    "credit_grade_11",
    "credit_grade_12",
    "credit_grade_13",
    "credit_grade_avg",
    "updated_at",
)
LH_NOTICE_COLUMNS = (
    "product_id",
    "title",
    "category",
    "notice_type",
    "region",
    "status",
    "notice_date",
    "close_date",
    "detail_url",
    "created_at",
    "updated_at",
)
SH_ANNOUNCEMENT_COLUMNS = (
    "product_id",
    "source",
    "external_id",
    "title",
    "category",
    "supply_type",
    "region",
    "department",
    "status",
    "post_date",
    "close_date",
    "views",
    "detail_url",
    "crawled_at",
    "created_at",
    "updated_at",
)
YOUTH_POLICY_COLUMNS = (
    "product_id",
    "policy_no",
    "name",
    "description",
    "keyword",
    "category_large",
    "category_middle",
    "agency",
    "apply_url",
    "region_code",
    "target_age_min",
    "target_age_max",
    "support_content",
    "start_date",
    "end_date",
    "created_at",
)


class DuplicateRecordError(Exception):
    """A natural-key uniqueness constraint rejected an insert."""


class ListingRepository:
    def __init__(self, database_path: str) -> None:
        self.database_path = Path(database_path)
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._transaction_depth = 0

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise RuntimeError("Database connection is not initialized")
        return self._connection

    def connect(self) -> None:
        with self._lock:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = sqlite3.connect(self.database_path, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA foreign_keys=ON")
            self._connection.executescript(
                """
                CREATE TABLE IF NOT EXISTS products (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    type TEXT NOT NULL,
                    name TEXT NOT NULL,
                    provider TEXT NOT NULL,
                    detail_url TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE UNIQUE INDEX IF NOT EXISTS ux_products_finance_key
                    ON products (type, name, provider)
                    WHERE type = 'FINANCE';

                CREATE TABLE IF NOT EXISTS finance_companies (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    company_code TEXT NOT NULL UNIQUE,
                    name TEXT,
                    homepage TEXT,
                    contact TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS finance_products (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
                    company_code TEXT NOT NULL,
                    product_type TEXT NOT NULL,
                    join_condition TEXT,
                    interest_rate REAL,
                    min_deposit INTEGER,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (product_id, company_code)
                );

                CREATE TABLE IF NOT EXISTS finance_loan_options (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    finance_product_id INTEGER NOT NULL
                        REFERENCES finance_products(id) ON DELETE CASCADE,
                    lend_rate_min REAL,
                    lend_rate_max REAL,
                    lend_rate_avg REAL,
                    prev_lend_rate_avg REAL,
                    repayment_type TEXT,
                    rate_type TEXT,
                    collateral_type TEXT,
                    credit_rate_type TEXT,
                    credit_rate_type_name TEXT,
                    credit_grade_1 REAL,
                    credit_grade_4 REAL,
                    credit_grade_5 REAL,
                    credit_grade_6 REAL,
                    credit_grade_10 REAL,
                    credit_grade_11 REAL,
                    credit_grade_12 REAL,
                    credit_grade_13 REAL,
                    credit_grade_avg REAL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT
                );

                CREATE UNIQUE INDEX IF NOT EXISTS ux_finance_loan_options_key
                    ON finance_loan_options (
                        finance_product_id,
                        COALESCE(repayment_type, ''),
                        COALESCE(rate_type, ''),
                        COALESCE(collateral_type, '')
                    );

                CREATE TABLE IF NOT EXISTS lh_notices (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    product_id INTEGER REFERENCES products(id) ON DELETE SET NULL,
                    title TEXT NOT NULL,
                    category TEXT,
                    notice_type TEXT,
                    region TEXT,
                    status TEXT,
                    notice_date TEXT NOT NULL,
                    close_date TEXT,
                    detail_url TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (title, notice_date)
                );

                CREATE TABLE IF NOT EXISTS sh_announcements (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    product_id INTEGER REFERENCES products(id) ON DELETE SET NULL,
                    source TEXT NOT NULL,
                    external_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    category TEXT,
                    supply_type TEXT,
                    region TEXT,
                    department TEXT,
                    status TEXT,
                    post_date TEXT,
                    close_date TEXT,
                    views INTEGER,
                    detail_url TEXT,
                    crawled_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (source, external_id)
                );

                CREATE TABLE IF NOT EXISTS youth_policies (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    product_id INTEGER REFERENCES products(id) ON DELETE SET NULL,
                    policy_no TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    description TEXT,
                    keyword TEXT,
                    category_large TEXT,
                    category_middle TEXT,
                    agency TEXT,
                    apply_url TEXT,
                    region_code TEXT,
                    target_age_min INTEGER,
                    target_age_max INTEGER,
                    support_content TEXT,
                    start_date TEXT,
                    end_date TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS sync_runs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source TEXT NOT NULL,
                    trigger TEXT NOT NULL,
                    status TEXT NOT NULL,
                    started_at TEXT NOT NULL,
                    finished_at TEXT,
                    fetch_calls INTEGER NOT NULL,
                    pages INTEGER NOT NULL,
                    fetched INTEGER NOT NULL,
                    inserted INTEGER NOT NULL,
                    updated INTEGER NOT NULL,
                    skipped INTEGER NOT NULL,
                    error TEXT
                );
                """
            )
            self._ensure_loan_option_columns()
            self._connection.commit()

    def _ensure_loan_option_columns(self) -> None:
        column_rows = self.connection.execute("PRAGMA table_info(finance_loan_options)").fetchall()
        existing = {row["name"] for row in column_rows}
        required_definitions = {
            "prev_lend_rate_avg": "REAL",
            "updated_at": "TEXT",
        }
        for column_name, definition in required_definitions.items():
            if column_name in existing:
                continue
            self.connection.execute(
                f"ALTER TABLE finance_loan_options ADD COLUMN {column_name} {definition}"
            )

    def close(self) -> None:
        with self._lock:
            if self._connection is None:
                return
            self._connection.close()
            self._connection = None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Group writes into one atomic unit. Nested calls join the outer unit."""
        with self._lock:
            self._transaction_depth += 1
            try:
                yield self.connection
            except BaseException:
                if self._transaction_depth == 1:
                    self.connection.rollback()
                raise
            else:
                if self._transaction_depth == 1:
                    self.connection.commit()
            finally:
                self._transaction_depth -= 1

    def _insert(self, table: str, columns: tuple[str, ...], values: dict[str, Any]) -> int:
        placeholders = ", ".join("?" for _ in columns)
        try:
            cursor = self.connection.execute(
                f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
                tuple(values[column] for column in columns),
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateRecordError(f"{table}: {exc}") from exc
        return int(cursor.lastrowid)

    def _update(
        self,
        table: str,
        row_id: int,
        columns: tuple[str, ...],
        values: dict[str, Any],
    ) -> None:
        assignments = ", ".join(f"{column} = ?" for column in columns)
        try:
            self.connection.execute(
                f"UPDATE {table} SET {assignments} WHERE id = ?",
                (*(values[column] for column in columns), row_id),
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateRecordError(f"{table}: {exc}") from exc

    @staticmethod
    def _values(model: BaseModel, **extra: Any) -> dict[str, Any]:
        values = model.model_dump()
        values.update(extra)
        return values

    # Products

    def insert_product(self, product: Product) -> Product:
        with self.transaction():
            now = now_utc_iso()
            columns = (*PRODUCT_COLUMNS, "created_at", "updated_at")
            row_id = self._insert(
                "products",
                columns,
                self._values(product, created_at=now, updated_at=now),
            )
        return product.model_copy(update={"id": row_id})

    def update_product(self, product: Product) -> Product:
        if product.id is None:
            raise ValueError("Cannot update a product without an id")
        with self.transaction():
            self._update(
                "products",
                product.id,
                (*PRODUCT_COLUMNS, "updated_at"),
                self._values(product, updated_at=now_utc_iso()),
            )
        return product

    def find_finance_product_entry(self, name: str, provider: str) -> Product | None:
        with self._lock:
            row = self.connection.execute(
                """
                SELECT id, type, name, provider, detail_url
                FROM products
                WHERE type = 'FINANCE' AND name = ? AND provider = ?
                """,
                (name, provider),
            ).fetchone()
        return Product(**dict(row)) if row else None

    def get_product(self, product_id: int) -> Product | None:
        with self._lock:
            row = self.connection.execute(
                "SELECT id, type, name, provider, detail_url FROM products WHERE id = ?",
                (product_id,),
            ).fetchone()
        return Product(**dict(row)) if row else None

    def list_products(self, product_type: str | None = None) -> list[Product]:
        with self._lock:
            if product_type is None:
                rows = self.connection.execute(
                    "SELECT id, type, name, provider, detail_url FROM products ORDER BY id"
                ).fetchall()
            else:
                rows = self.connection.execute(
                    """
                    SELECT id, type, name, provider, detail_url
                    FROM products
                    WHERE type = ?
                    ORDER BY id
                    """,
                    (product_type,),
                ).fetchall()
        return [Product(**dict(row)) for row in rows]

    # Finance companies

    def find_finance_company(self, company_code: str) -> FinanceCompany | None:
        with self._lock:
            row = self.connection.execute(
                """
                SELECT id, company_code, name, homepage, contact
                FROM finance_companies
                WHERE company_code = ?
                """,
                (company_code,),
            ).fetchone()
        return FinanceCompany(**dict(row)) if row else None

    def insert_finance_company(self, company: FinanceCompany) -> FinanceCompany:
        with self.transaction():
            now = now_utc_iso()
            row_id = self._insert(
                "finance_companies",
                (*COMPANY_COLUMNS, "created_at", "updated_at"),
                self._values(company, created_at=now, updated_at=now),
            )
        return company.model_copy(update={"id": row_id})

    def update_finance_company(self, company: FinanceCompany) -> FinanceCompany:
        if company.id is None:
            raise ValueError("Cannot update a company without an id")
        with self.transaction():
            self._update(
                "finance_companies",
                company.id,
                (*COMPANY_COLUMNS, "updated_at"),
                self._values(company, updated_at=now_utc_iso()),
            )
        return company

    def list_finance_companies(self) -> list[FinanceCompany]:
        with self._lock:
            rows = self.connection.execute(
                """
                SELECT id, company_code, name, homepage, contact
                FROM finance_companies
                ORDER BY company_code
                """
            ).fetchall()
        return [FinanceCompany(**dict(row)) for row in rows]

    # Finance products

    def find_finance_product(self, product_id: int, company_code: str) -> FinanceProduct | None:
        with self._lock:
            row = self.connection.execute(
                f"""
                SELECT id, {", ".join(FINANCE_PRODUCT_COLUMNS)}
                FROM finance_products
                WHERE product_id = ? AND company_code = ?
                """,
                (product_id, company_code),
            ).fetchone()
        return FinanceProduct(**dict(row)) if row else None

    def insert_finance_product(self, finance_product: FinanceProduct) -> FinanceProduct:
        with self.transaction():
            now = now_utc_iso()
            row_id = self._insert(
                "finance_products",
                (*FINANCE_PRODUCT_COLUMNS, "created_at", "updated_at"),
                self._values(finance_product, created_at=now, updated_at=now),
            )
        return finance_product.model_copy(update={"id": row_id})

    def update_finance_product(self, finance_product: FinanceProduct) -> FinanceProduct:
        if finance_product.id is None:
            raise ValueError("Cannot update a finance product without an id")
        with self.transaction():
            self._update(
                "finance_products",
                finance_product.id,
                (*FINANCE_PRODUCT_COLUMNS, "updated_at"),
                self._values(finance_product, updated_at=now_utc_iso()),
            )
        return finance_product

    def list_finance_products(self, product_type: str | None = None) -> list[FinanceProduct]:
        query = f"SELECT id, {', '.join(FINANCE_PRODUCT_COLUMNS)} FROM finance_products"
        params: tuple[Any, ...] = ()
        if product_type is not None:
            query += " WHERE product_type = ?"
            params = (product_type,)
        with self._lock:
            rows = self.connection.execute(f"{query} ORDER BY id", params).fetchall()
        return [FinanceProduct(**dict(row)) for row in rows]

    def has_finance_products(self) -> bool:
        with self._lock:
            row = self.connection.execute("SELECT 1 FROM finance_products LIMIT 1").fetchone()
        return row is not None

    # Loan options

    def find_loan_option(
        self,
        finance_product_id: int,
        repayment_type: str | None,
        rate_type: str | None,
        collateral_type: str | None,
    ) -> FinanceLoanOption | None:
        with self._lock:
            row = self.connection.execute(
                f"""
                SELECT id, {", ".join(LOAN_OPTION_COLUMNS)}
                FROM finance_loan_options
                WHERE finance_product_id = ?
                    AND COALESCE(repayment_type, '') = COALESCE(?, '')
                    AND COALESCE(rate_type, '') = COALESCE(?, '')
                    AND COALESCE(collateral_type, '') = COALESCE(?, '')
                """,
                (finance_product_id, repayment_type, rate_type, collateral_type),
            ).fetchone()
        return FinanceLoanOption(**dict(row)) if row else None

    def insert_loan_option(self, option: FinanceLoanOption) -> FinanceLoanOption:
        with self.transaction():
            now = now_utc_iso()
            updated_at = option.updated_at or now
            row_id = self._insert(
                "finance_loan_options",
                (*LOAN_OPTION_COLUMNS, "created_at"),
                self._values(option, updated_at=updated_at, created_at=now),
            )
        return option.model_copy(update={"id": row_id, "updated_at": updated_at})

    def update_loan_option(self, option: FinanceLoanOption) -> FinanceLoanOption:
        if option.id is None:
            raise ValueError("Cannot update a loan option without an id")
        updated_at = option.updated_at or now_utc_iso()
        with self.transaction():
            self._update(
                "finance_loan_options",
                option.id,
                LOAN_OPTION_COLUMNS,
                self._values(option, updated_at=updated_at),
            )
        return option.model_copy(update={"updated_at": updated_at})

    def list_loan_options(self, finance_product_id: int | None = None) -> list[FinanceLoanOption]:
        query = f"SELECT id, {', '.join(LOAN_OPTION_COLUMNS)} FROM finance_loan_options"
        params: tuple[Any, ...] = ()
        if finance_product_id is not None:
            query += " WHERE finance_product_id = ?"
            params = (finance_product_id,)
        with self._lock:
            rows = self.connection.execute(f"{query} ORDER BY id", params).fetchall()
        return [FinanceLoanOption(**dict(row)) for row in rows]

    def list_loan_rate_changes(self, since_iso: str) -> list[LoanRateChange]:
        with self._lock:
            rows = self.connection.execute(
                """
                SELECT
                    p.name AS product_name,
                    p.provider AS provider,
                    fp.product_type AS product_type,
                    o.repayment_type AS repayment_type,
                    o.rate_type AS rate_type,
                    o.collateral_type AS collateral_type,
                    o.prev_lend_rate_avg AS previous_avg,
                    o.lend_rate_avg AS current_avg,
                    o.updated_at AS updated_at
                FROM finance_loan_options o
                JOIN finance_products fp ON fp.id = o.finance_product_id
                JOIN products p ON p.id = fp.product_id
                WHERE o.updated_at >= ?
                    AND o.prev_lend_rate_avg IS NOT NULL
                    AND o.lend_rate_avg IS NOT NULL
                    AND o.prev_lend_rate_avg != o.lend_rate_avg
                ORDER BY o.updated_at DESC, o.id
                """,
                (since_iso,),
            ).fetchall()
        return [LoanRateChange(**dict(row)) for row in rows]

    # LH notices

    def find_lh_notice(self, title: str, notice_date: str) -> LhNotice | None:
        with self._lock:
            row = self.connection.execute(
                f"""
                SELECT id, {", ".join(LH_NOTICE_COLUMNS)}
                FROM lh_notices
                WHERE title = ? AND notice_date = ?
                """,
                (title, notice_date),
            ).fetchone()
        return LhNotice(**dict(row)) if row else None

    def insert_lh_notice(self, notice: LhNotice) -> LhNotice:
        with self.transaction():
            now = now_utc_iso()
            values = self._values(
                notice,
                created_at=notice.created_at or now,
                updated_at=now,
            )
            row_id = self._insert("lh_notices", LH_NOTICE_COLUMNS, values)
        return notice.model_copy(
            update={"id": row_id, "created_at": values["created_at"], "updated_at": now}
        )

    def list_lh_notices(self) -> list[LhNotice]:
        with self._lock:
            rows = self.connection.execute(
                f"SELECT id, {', '.join(LH_NOTICE_COLUMNS)} FROM lh_notices ORDER BY id"
            ).fetchall()
        return [LhNotice(**dict(row)) for row in rows]

    # SH announcements

    def find_sh_announcement(self, source: str, external_id: str) -> ShAnnouncement | None:
        with self._lock:
            row = self.connection.execute(
                f"""
                SELECT id, {", ".join(SH_ANNOUNCEMENT_COLUMNS)}
                FROM sh_announcements
                WHERE source = ? AND external_id = ?
                """,
                (source, external_id),
            ).fetchone()
        return ShAnnouncement(**dict(row)) if row else None

    def insert_sh_announcement(self, announcement: ShAnnouncement) -> ShAnnouncement:
        with self.transaction():
            now = now_utc_iso()
            values = self._values(
                announcement,
                created_at=announcement.created_at or now,
                updated_at=now,
            )
            row_id = self._insert("sh_announcements", SH_ANNOUNCEMENT_COLUMNS, values)
        return announcement.model_copy(
            update={"id": row_id, "created_at": values["created_at"], "updated_at": now}
        )

    def update_sh_announcement(self, announcement: ShAnnouncement) -> ShAnnouncement:
        if announcement.id is None:
            raise ValueError("Cannot update an announcement without an id")
        now = now_utc_iso()
        columns = tuple(column for column in SH_ANNOUNCEMENT_COLUMNS if column != "created_at")
        with self.transaction():
            self._update(
                "sh_announcements",
                announcement.id,
                columns,
                self._values(announcement, updated_at=now),
            )
        return announcement.model_copy(update={"updated_at": now})

    def list_sh_announcements(self) -> list[ShAnnouncement]:
        with self._lock:
            rows = self.connection.execute(
                f"SELECT id, {', '.join(SH_ANNOUNCEMENT_COLUMNS)} FROM sh_announcements ORDER BY id"
            ).fetchall()
        return [ShAnnouncement(**dict(row)) for row in rows]

    # Youth policies

    def find_youth_policy(self, policy_no: str) -> YouthPolicy | None:
        with self._lock:
            row = self.connection.execute(
                f"""
                SELECT id, {", ".join(YOUTH_POLICY_COLUMNS)}
                FROM youth_policies
                WHERE policy_no = ?
                """,
                (policy_no,),
            ).fetchone()
        return YouthPolicy(**dict(row)) if row else None

    def insert_youth_policy(self, policy: YouthPolicy) -> YouthPolicy:
        with self.transaction():
            values = self._values(policy, created_at=policy.created_at or now_utc_iso())
            row_id = self._insert("youth_policies", YOUTH_POLICY_COLUMNS, values)
        return policy.model_copy(update={"id": row_id, "created_at": values["created_at"]})

    def list_youth_policies(self) -> list[YouthPolicy]:
        with self._lock:
            rows = self.connection.execute(
                f"SELECT id, {', '.join(YOUTH_POLICY_COLUMNS)} FROM youth_policies ORDER BY id"
            ).fetchall()
        return [YouthPolicy(**dict(row)) for row in rows]

    # Sync history

    def record_sync_run(self, report: SyncReport) -> SyncRun:
        with self.transaction():
            cursor = self.connection.execute(
                """
                INSERT INTO sync_runs (
                    source,
                    trigger,
                    status,
                    started_at,
                    finished_at,
                    fetch_calls,
                    pages,
                    fetched,
                    inserted,
                    updated,
                    skipped,
                    error
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    report.source,
                    report.trigger,
                    report.status,
                    report.started_at,
                    report.finished_at,
                    report.fetch_calls,
                    report.pages,
                    report.fetched,
                    report.inserted,
                    report.updated,
                    report.skipped,
                    "; ".join(report.errors) or None,
                ),
            )
            run_id = int(cursor.lastrowid)
        return self._to_sync_run(
            {
                "id": run_id,
                **report.model_dump(exclude={"errors"}),
                "error": "; ".join(report.errors) or None,
            }
        )

    def list_sync_runs(self, *, limit: int = 100, source: str | None = None) -> list[SyncRun]:
        query = "SELECT * FROM sync_runs"
        params: list[Any] = []
        if source is not None:
            query += " WHERE source = ?"
            params.append(source)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        with self._lock:
            rows = self.connection.execute(query, tuple(params)).fetchall()
        return [self._to_sync_run(dict(row)) for row in rows]

    def count_rows(self, table: str) -> int:
        if table not in {
            "products",
            "finance_companies",
            "finance_products",
            "finance_loan_options",
            "lh_notices",
            "sh_announcements",
            "youth_policies",
            "sync_runs",
        }:
            raise ValueError(f"Unknown table: {table}")
        with self._lock:
            row = self.connection.execute(f"SELECT COUNT(1) AS c FROM {table}").fetchone()
        return int(row["c"])

    def _to_sync_run(self, row: dict[str, Any]) -> SyncRun:
        return SyncRun(
            run_id=row["id"],
            source=row["source"],
            trigger=row["trigger"],
            status=row["status"],
            started_at=row["started_at"],
            finished_at=row["finished_at"],
            fetch_calls=row["fetch_calls"],
            pages=row["pages"],
            fetched=row["fetched"],
            inserted=row["inserted"],
            updated=row["updated"],
            skipped=row["skipped"],
            error=row["error"],
        )
