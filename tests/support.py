import os
import shutil
import tempfile
import unittest

from core.entities.user import User
from core.use_cases.user_use_cases import register_user
from infrastructure.db.sqlite import SQLiteUnitOfWork, connect, init_db


class DatabaseTestCase(unittest.TestCase):
    """Fresh SQLite file per test, exposed through a unit of work."""

    def setUp(self) -> None:
        self.tmpdir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.tmpdir, "test.sqlite")
        init_db(self.db_path)
        self.conn = connect(self.db_path)
        self.uow = SQLiteUnitOfWork(self.conn)

    def tearDown(self) -> None:
        self.conn.close()
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def make_user(self, username: str, balance_cents: int = 0) -> User:
        user = register_user(self.uow, username, "secret")
        if balance_cents:
            with self.uow:
                user = self.uow.users.add_balance(user.id, balance_cents)
        return user

    def balance(self, user_id: int) -> int:
        with self.uow:
            return self.uow.users.get_by_id(user_id).balance_cents

    def ledger(self, user_id: int):
        with self.uow:
            return self.uow.ledger.list_transactions(user_id)
