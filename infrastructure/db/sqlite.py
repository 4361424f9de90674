import sqlite3
import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from pathlib import Path
import json

from core.entities.user import User
from core.entities.room import Room, ROOM_WAITING, ROOM_PLAYING, ROOM_FINISHED
from core.entities.transaction import Transaction
from core.errors import DuplicateChargeError, InsufficientFundsError, NotFoundError
from core.repositories.user_repository import UserRepository
from core.repositories.room_repository import RoomRepository
from core.repositories.ledger_repository import LedgerRepository
from core.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def connect(db_path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str) -> None:
    if db_path != ":memory:" and not db_path.startswith("file:"):
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, check_same_thread=False)
    try:
        cur = conn.cursor()

        cur.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            balance_cents INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL
        );
        """)

        cur.execute("""
        CREATE TABLE IF NOT EXISTS rooms (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            host_id INTEGER NOT NULL,
            guest_id INTEGER,
            stake_cents INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'waiting',
            winner_id INTEGER,
            created_at TEXT NOT NULL,
            FOREIGN KEY(host_id) REFERENCES users(id),
            FOREIGN KEY(guest_id) REFERENCES users(id)
        );
        """)

        # user_id = 0 is the platform, hence no FOREIGN KEY
        cur.execute("""
        CREATE TABLE IF NOT EXISTS transactions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            type TEXT NOT NULL,
            amount_cents INTEGER NOT NULL,
            balance_after INTEGER,
            metadata TEXT,
            charge_id TEXT,
            room_id INTEGER,
            created_at TEXT NOT NULL
        );
        """)
        cur.execute("CREATE INDEX IF NOT EXISTS ix_transactions_user ON transactions (user_id);")
        cur.execute("CREATE INDEX IF NOT EXISTS ix_transactions_charge ON transactions (charge_id, type);")
        # one confirmed deposit per charge
        cur.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS ux_transactions_deposit_charge "
            "ON transactions (charge_id) WHERE type = 'deposit';"
        )
        conn.commit()
    finally:
        conn.close()
    logger.info("database ready at %s", db_path)


class SQLiteUserRepository(UserRepository):
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            username=row["username"],
            password_hash=row["password_hash"],
            balance_cents=int(row["balance_cents"]),
            created_at=row["created_at"],
        )

    def create_user(self, username: str, password_hash: str) -> User:
        created_at = _now()
        cur = self.conn.cursor()
        try:
            cur.execute(
                "INSERT INTO users (username, password_hash, balance_cents, created_at) VALUES (?, ?, ?, ?)",
                (username, password_hash, 0, created_at),
            )
        except sqlite3.IntegrityError:
            raise ValueError("username already exists")
        return User(id=cur.lastrowid, username=username, password_hash=password_hash,
                    balance_cents=0, created_at=created_at)

    def get_by_username(self, username: str) -> Optional[User]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM users WHERE username = ?", (username,))
        row = cur.fetchone()
        return self._row_to_user(row) if row else None

    def get_by_id(self, user_id: int) -> Optional[User]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM users WHERE id = ?", (int(user_id),))
        row = cur.fetchone()
        return self._row_to_user(row) if row else None

    def add_balance(self, user_id: int, delta_cents: int) -> User:
        cur = self.conn.cursor()
        cur.execute(
            "UPDATE users SET balance_cents = balance_cents + ? WHERE id = ?",
            (int(delta_cents), int(user_id)),
        )
        if cur.rowcount == 0:
            raise NotFoundError("user not found")
        user = self.get_by_id(user_id)
        assert user is not None
        return user

    def debit_if_sufficient(self, user_id: int, amount_cents: int) -> User:
        if amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        cur = self.conn.cursor()
        cur.execute(
            "UPDATE users SET balance_cents = balance_cents - ? WHERE id = ? AND balance_cents >= ?",
            (int(amount_cents), int(user_id), int(amount_cents)),
        )
        if cur.rowcount == 0:
            if self.get_by_id(user_id) is None:
                raise NotFoundError("user not found")
            raise InsufficientFundsError("insufficient balance")
        user = self.get_by_id(user_id)
        assert user is not None
        return user


class SQLiteRoomRepository(RoomRepository):
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def _row_to_room(self, row: sqlite3.Row) -> Room:
        return Room(
            id=row["id"],
            host_id=row["host_id"],
            guest_id=row["guest_id"],
            stake_cents=int(row["stake_cents"]),
            status=row["status"],
            winner_id=row["winner_id"],
            created_at=row["created_at"],
        )

    def create_room(self, host_id: int, stake_cents: int) -> Room:
        created_at = _now()
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO rooms (host_id, stake_cents, status, created_at) VALUES (?, ?, ?, ?)",
            (int(host_id), int(stake_cents), ROOM_WAITING, created_at),
        )
        return Room(id=cur.lastrowid, host_id=host_id, stake_cents=stake_cents,
                    status=ROOM_WAITING, created_at=created_at)

    def get_by_id(self, room_id: int) -> Optional[Room]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM rooms WHERE id = ?", (int(room_id),))
        row = cur.fetchone()
        return self._row_to_room(row) if row else None

    def list_rooms(self, status: Optional[str] = None, limit: int = 50) -> List[Room]:
        cur = self.conn.cursor()
        if status:
            cur.execute("SELECT * FROM rooms WHERE status = ? ORDER BY id DESC LIMIT ?", (status, int(limit)))
        else:
            cur.execute("SELECT * FROM rooms ORDER BY id DESC LIMIT ?", (int(limit),))
        return [self._row_to_room(r) for r in cur.fetchall()]

    def start(self, room_id: int, guest_id: int) -> bool:
        cur = self.conn.cursor()
        cur.execute(
            "UPDATE rooms SET guest_id = ?, status = ? WHERE id = ? AND status = ? AND guest_id IS NULL",
            (int(guest_id), ROOM_PLAYING, int(room_id), ROOM_WAITING),
        )
        return cur.rowcount == 1

    def finish(self, room_id: int, winner_id: int) -> bool:
        cur = self.conn.cursor()
        cur.execute(
            "UPDATE rooms SET winner_id = ?, status = ? WHERE id = ? AND status = ?",
            (int(winner_id), ROOM_FINISHED, int(room_id), ROOM_PLAYING),
        )
        return cur.rowcount == 1


class SQLiteLedgerRepository(LedgerRepository):
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def _row_to_tx(self, row: sqlite3.Row) -> Transaction:
        meta = None
        if row["metadata"]:
            try:
                meta = json.loads(row["metadata"])
            except ValueError:
                meta = {"raw": row["metadata"]}
        return Transaction(
            id=row["id"],
            user_id=row["user_id"],
            type=row["type"],
            amount_cents=row["amount_cents"],
            balance_after=row["balance_after"],
            metadata=meta,
            created_at=row["created_at"],
            charge_id=row["charge_id"],
            room_id=row["room_id"],
        )

    def log_transaction(self, user_id: int, type: str, amount_cents: int, balance_after: Optional[int],
                        metadata: Optional[Dict[str, Any]] = None, charge_id: Optional[str] = None,
                        room_id: Optional[int] = None) -> Transaction:
        created_at = _now()
        meta_str = json.dumps(metadata, ensure_ascii=False) if metadata is not None else None
        cur = self.conn.cursor()
        try:
            cur.execute(
                "INSERT INTO transactions (user_id, type, amount_cents, balance_after, metadata, charge_id, room_id, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (int(user_id), type, int(amount_cents),
                 None if balance_after is None else int(balance_after),
                 meta_str, charge_id, room_id, created_at),
            )
        except sqlite3.IntegrityError:
            raise DuplicateChargeError(f"charge {charge_id} already has a {type} entry")
        return Transaction(id=cur.lastrowid, user_id=user_id, type=type, amount_cents=amount_cents,
                           balance_after=balance_after, metadata=metadata, created_at=created_at,
                           charge_id=charge_id, room_id=room_id)

    def list_transactions(self, user_id: int, limit: int = 100, offset: int = 0) -> List[Transaction]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT * FROM transactions WHERE user_id = ? ORDER BY id DESC LIMIT ? OFFSET ?",
            (int(user_id), int(limit), int(offset)),
        )
        rows = cur.fetchall()
        return [self._row_to_tx(r) for r in rows]

    def find_by_charge(self, charge_id: str, type: str) -> Optional[Transaction]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT * FROM transactions WHERE charge_id = ? AND type = ? ORDER BY id LIMIT 1",
            (charge_id, type),
        )
        row = cur.fetchone()
        return self._row_to_tx(row) if row else None

    def list_by_room(self, room_id: int) -> List[Transaction]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM transactions WHERE room_id = ? ORDER BY id", (int(room_id),))
        return [self._row_to_tx(r) for r in cur.fetchall()]


class SQLiteUnitOfWork(UnitOfWork):
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.users = SQLiteUserRepository(conn)
        self.rooms = SQLiteRoomRepository(conn)
        self.ledger = SQLiteLedgerRepository(conn)

    def commit(self) -> None:
        self.conn.commit()

    def rollback(self) -> None:
        if self.conn.in_transaction:
            logger.warning("rolling back unit of work")
        self.conn.rollback()
