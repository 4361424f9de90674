import os
import shutil
import tempfile
import unittest
from unittest import mock

from fastapi.testclient import TestClient

from config.settings import settings
from infrastructure.payments.stub_provider import StubPaymentProvider
from infrastructure.web.dependencies import get_payment_provider
from main import app


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.mkdtemp()
        self._saved_db_path = settings.DB_PATH
        settings.DB_PATH = os.path.join(self.tmpdir, "api.sqlite")
        app.dependency_overrides[get_payment_provider] = StubPaymentProvider
        self.client = TestClient(app)
        self.client.__enter__()

    def tearDown(self) -> None:
        self.client.__exit__(None, None, None)
        app.dependency_overrides.clear()
        settings.DB_PATH = self._saved_db_path
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def register(self, username: str, password: str = "pw"):
        r = self.client.post("/api/register", json={"username": username, "password": password})
        self.assertEqual(r.status_code, 200, r.text)
        data = r.json()
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    def deposit(self, headers, amount_cents: int) -> str:
        r = self.client.post("/api/pix/create_charge", json={"amount_cents": amount_cents}, headers=headers)
        self.assertEqual(r.status_code, 200, r.text)
        charge_id = r.json()["charge_id"]
        r = self.client.post("/api/pixup/webhook", json={"resource": {"charge_id": charge_id, "status": "paid"}})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.text, "ok")
        return charge_id

    def balance(self, headers) -> int:
        return self.client.get("/api/me", headers=headers).json()["user"]["balance_cents"]


class AuthApiTests(ApiTestCase):
    def test_register_login_me(self):
        user, headers = self.register("dave", "hunter2")
        self.assertEqual(user["balance_cents"], 0)

        r = self.client.post("/api/login", json={"username": "dave", "password": "hunter2"})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["user"]["id"], user["id"])

        r = self.client.get("/api/me", headers={"Authorization": f"Bearer {r.json()['token']}"})
        self.assertEqual(r.json()["user"]["username"], "dave")

    def test_duplicate_username(self):
        self.register("erin")
        r = self.client.post("/api/register", json={"username": "erin", "password": "pw"})
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["detail"], "username already exists")

    def test_bad_login(self):
        self.register("frank", "right")
        r = self.client.post("/api/login", json={"username": "frank", "password": "wrong"})
        self.assertEqual(r.status_code, 401)
        r = self.client.post("/api/login", json={"username": "nobody", "password": "x"})
        self.assertEqual(r.status_code, 401)

    def test_token_required(self):
        self.assertEqual(self.client.get("/api/me").status_code, 401)
        r = self.client.get("/api/me", headers={"Authorization": "Bearer not-a-jwt"})
        self.assertEqual(r.status_code, 401)
        self.assertEqual(r.json()["detail"], "invalid token")

    def test_health(self):
        self.assertEqual(self.client.get("/api/health").json(), {"status": "ok"})


class RoomApiTests(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.host, self.host_h = self.register("host")
        self.guest, self.guest_h = self.register("guest")
        self.deposit(self.host_h, 5000)
        self.deposit(self.guest_h, 5000)

    def test_full_match(self):
        r = self.client.post("/api/rooms", json={"stake_cents": 2000}, headers=self.host_h)
        self.assertEqual(r.status_code, 200, r.text)
        room = r.json()["room"]
        self.assertEqual(room["status"], "waiting")
        self.assertEqual(self.balance(self.host_h), 3000)

        r = self.client.get("/api/rooms", headers=self.guest_h)
        self.assertEqual([x["id"] for x in r.json()["rooms"]], [room["id"]])

        r = self.client.post(f"/api/rooms/{room['id']}/join", headers=self.guest_h)
        self.assertEqual(r.status_code, 200, r.text)
        self.assertEqual(r.json()["room"]["status"], "playing")
        self.assertEqual(self.balance(self.guest_h), 3000)

        r = self.client.post(f"/api/rooms/{room['id']}/result", json={"winner_id": self.host["id"]},
                             headers=self.guest_h)
        self.assertEqual(r.status_code, 200, r.text)
        self.assertEqual(r.json()["room"]["winner_id"], self.host["id"])
        self.assertEqual(r.json()["room"]["status"], "finished")
        self.assertEqual(self.balance(self.host_h), 3000 + 3900)

        txs = self.client.get("/api/transactions", headers=self.host_h).json()["transactions"]
        self.assertEqual([t["type"] for t in txs], ["payout", "stake", "deposit", "deposit_pending"])

    def test_minimum_stake(self):
        r = self.client.post("/api/rooms", json={"stake_cents": 500}, headers=self.host_h)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["detail"], "minimum stake is R$ 10.00")

    def test_insufficient_balance(self):
        r = self.client.post("/api/rooms", json={"stake_cents": 9000}, headers=self.host_h)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["detail"], "insufficient balance, deposit first")

    def test_join_errors(self):
        room = self.client.post("/api/rooms", json={"stake_cents": 1000}, headers=self.host_h).json()["room"]

        r = self.client.post(f"/api/rooms/{room['id']}/join", headers=self.host_h)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["detail"], "cannot join your own room")

        self.assertEqual(self.client.post("/api/rooms/999/join", headers=self.guest_h).status_code, 404)

        self.client.post(f"/api/rooms/{room['id']}/join", headers=self.guest_h)
        _, third_h = self.register("third")
        self.deposit(third_h, 5000)
        r = self.client.post(f"/api/rooms/{room['id']}/join", headers=third_h)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["detail"], "room not available")

    def test_outsider_cannot_report(self):
        room = self.client.post("/api/rooms", json={"stake_cents": 1000}, headers=self.host_h).json()["room"]
        self.client.post(f"/api/rooms/{room['id']}/join", headers=self.guest_h)
        outsider, outsider_h = self.register("outsider")

        r = self.client.post(f"/api/rooms/{room['id']}/result", json={"winner_id": outsider["id"]},
                             headers=outsider_h)
        self.assertEqual(r.status_code, 403)
        self.assertEqual(r.json()["detail"], "not a participant")

    def test_show_room(self):
        room = self.client.post("/api/rooms", json={"stake_cents": 1000}, headers=self.host_h).json()["room"]
        r = self.client.get(f"/api/rooms/{room['id']}", headers=self.guest_h)
        self.assertEqual(r.json()["room"]["stake_cents"], 1000)
        self.assertEqual([e["type"] for e in r.json()["ledger"]], ["stake"])
        self.assertEqual(self.client.get("/api/rooms/404", headers=self.guest_h).status_code, 404)

    def test_show_finished_room_ledger(self):
        room = self.client.post("/api/rooms", json={"stake_cents": 2000}, headers=self.host_h).json()["room"]
        self.client.post(f"/api/rooms/{room['id']}/join", headers=self.guest_h)
        self.client.post(f"/api/rooms/{room['id']}/result", json={"winner_id": self.guest["id"]},
                         headers=self.host_h)

        ledger = self.client.get(f"/api/rooms/{room['id']}", headers=self.host_h).json()["ledger"]
        self.assertEqual([(e["type"], e["user_id"], e["amount_cents"]) for e in ledger], [
            ("stake", self.host["id"], -2000),
            ("stake", self.guest["id"], -2000),
            ("payout", self.guest["id"], 3900),
            ("platform_fee", 0, 100),
        ])
        self.assertNotIn("balance_after", ledger[0])


class WalletApiTests(ApiTestCase):
    def test_withdraw(self):
        _, headers = self.register("gina")
        self.deposit(headers, 10000)

        r = self.client.post("/api/withdraw", json={"amount_cents": 5000}, headers=headers)
        self.assertEqual(r.status_code, 200, r.text)
        self.assertEqual(r.json(), {
            "ok": True,
            "amount_cents": 5000,
            "fee_cents": 150,
            "debited_cents": 5150,
            "balance_cents": 4850,
        })

        r = self.client.post("/api/withdraw", json={"amount_cents": 4850}, headers=headers)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["detail"], "insufficient balance including fees")

        r = self.client.post("/api/withdraw", json={"amount_cents": 0}, headers=headers)
        self.assertEqual(r.status_code, 400)

    def test_webhook_is_idempotent_and_tolerant(self):
        _, headers = self.register("hank")
        charge_id = self.deposit(headers, 2500)

        r = self.client.post("/api/pixup/webhook", json={"id": charge_id, "status": "paid"})
        self.assertEqual(r.text, "ok")
        self.assertEqual(self.balance(headers), 2500)

        r = self.client.post("/api/pixup/webhook", json={"hello": "world"})
        self.assertEqual(r.status_code, 200)

    def test_webhook_failure_answers_500(self):
        _, headers = self.register("jack")
        charge_id = self.client.post("/api/pix/create_charge", json={"amount_cents": 1500},
                                     headers=headers).json()["charge_id"]
        event = {"id": charge_id, "status": "paid"}

        with mock.patch("infrastructure.web.controllers.pix_controller.confirm_deposit",
                        side_effect=RuntimeError("database unavailable")):
            with self.assertLogs("infrastructure.web.controllers.pix_controller", level="ERROR"):
                r = self.client.post("/api/pixup/webhook", json=event)
        self.assertEqual(r.status_code, 500)
        self.assertEqual(r.text, "error")
        self.assertEqual(self.balance(headers), 0)

        # the provider retries; the retry credits normally
        r = self.client.post("/api/pixup/webhook", json=event)
        self.assertEqual(r.text, "ok")
        self.assertEqual(self.balance(headers), 1500)

    def test_charge_uses_public_callback_url(self):
        _, headers = self.register("ivy")
        r = self.client.post("/api/pix/create_charge", json={"amount_cents": 1000, "description": "teste"},
                             headers=headers)
        body = r.json()
        self.assertEqual(body["provider"], "stub")
        self.assertEqual(body["charge"]["callback_url"], settings.webhook_url)
        self.assertEqual(body["charge"]["description"], "teste")
        self.assertEqual(self.balance(headers), 0)


if __name__ == "__main__":
    unittest.main()
