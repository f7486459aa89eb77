from academy.models import User

from labs.challenge import build_pools

from support import AcademyTestCase

ANSWERS = {c.id: c.answer for pool in build_pools().values() for c in pool}


class CryptoLabTestCase(AcademyTestCase):
    def setUp(self):
        super().setUp()
        self.register("alice")

    def load(self, pool=None):
        url = "/api/labs/crypto/challenge" + (f"?pool={pool}" if pool else "")
        resp = self.client.get(url)
        self.assertEqual(resp.status_code, 200)
        return resp.get_json()["data"]

    def test_challenge_hides_answer(self):
        data = self.load("caesar")
        self.assertEqual(data["state"], "loaded")
        self.assertEqual(data["challenge"]["algorithm"], "caesar")
        self.assertNotIn("answer", data["challenge"])

    def test_correct_submission_scores(self):
        challenge = self.load("atbash")["challenge"]
        resp = self.client.post("/api/labs/crypto/submit", json={"answer": ANSWERS[challenge["id"]].lower()})
        data = resp.get_json()["data"]
        self.assertTrue(data["correct"])
        self.assertEqual(data["points"], challenge["points"])
        self.assertEqual(User.query.filter_by(username="alice").first().points, challenge["points"])

        again = self.client.post("/api/labs/crypto/submit", json={"answer": "whatever"})
        self.assertEqual(again.status_code, 400)

        self.scheduler.run_pending()
        stats = self.client.get("/api/labs/crypto/stats").get_json()["data"]
        self.assertEqual(stats["state"], "loaded")
        self.assertEqual(stats["stats"]["challenges_solved"], 1)

    def test_wrong_submission(self):
        self.load("morse")
        data = self.client.post("/api/labs/crypto/submit", json={"answer": "nope"}).get_json()["data"]
        self.assertFalse(data["correct"])
        self.assertEqual(data["points"], 0)
        self.assertEqual(self.client.post("/api/labs/crypto/submit", json={}).status_code, 400)

    def test_submit_without_challenge(self):
        resp = self.client.post("/api/labs/crypto/submit", json={"answer": "x"})
        self.assertEqual(resp.status_code, 404)

    def test_hint_and_skip(self):
        self.load("vigenere")
        hint = self.client.post("/api/labs/crypto/hint").get_json()["data"]
        self.assertTrue(hint["hint"])
        self.assertEqual(hint["stats"]["hints_used"], 1)
        skipped = self.client.post("/api/labs/crypto/skip").get_json()["data"]
        self.assertEqual(skipped["state"], "loaded")
        self.assertIsNone(skipped["hint"])

    def test_encrypt_decrypt(self):
        resp = self.client.post("/api/labs/crypto/encrypt", json={"cipher": "vigenere", "text": "ATTACK", "key": "LEMON"})
        self.assertEqual(resp.get_json()["data"]["result"], "LXFOPV")
        resp = self.client.post("/api/labs/crypto/decrypt", json={"cipher": "caesar", "text": "KHOOR", "key": 3})
        self.assertEqual(resp.get_json()["data"]["result"], "HELLO")
        resp = self.client.post("/api/labs/crypto/encrypt", json={"cipher": "vigenere", "text": "ABC", "key": "42"})
        self.assertEqual(resp.status_code, 400)
        resp = self.client.post("/api/labs/crypto/encrypt", json={"cipher": "enigma", "text": "ABC"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(self.client.post("/api/labs/crypto/encrypt", json={"text": ""}).status_code, 400)

    def test_frequency(self):
        resp = self.client.post("/api/labs/crypto/frequency", json={"text": "aab"})
        freq = resp.get_json()["data"]["frequency"]
        self.assertEqual(freq["A"], 66.67)
        self.assertEqual(freq["Z"], 0)


class CrackLabTestCase(AcademyTestCase):
    def setUp(self):
        super().setUp()
        self.register("alice")

    def start(self, **payload):
        resp = self.client.post("/api/labs/crack/sessions", json=payload)
        self.assertEqual(resp.status_code, 201, resp.get_json())
        return resp.get_json()["data"]

    def test_brute_force_until_cracked(self):
        session = self.start(length=2, lowercase=False, digits=True, mode="brute-force")
        self.assertEqual(session["searchSpace"], 100)
        self.assertEqual(session["status"], "ready")
        self.assertNotIn("password", session)

        resp = self.client.post(f"/api/labs/crack/sessions/{session['id']}/step", json={"steps": 100})
        data = resp.get_json()["data"]
        self.assertEqual(data["status"], "cracked")
        self.assertEqual(len(data["password"]), 2)
        self.assertEqual(data["pointsEarned"], 50)
        self.assertEqual(User.query.filter_by(username="alice").first().points, 50)

        # finished sessions are gone
        self.assertEqual(self.client.get(f"/api/labs/crack/sessions/{session['id']}").status_code, 404)

    def test_dictionary_exhausts(self):
        session = self.start(length=12, uppercase=True, symbols=True, mode="dictionary")
        data = self.client.post(
            f"/api/labs/crack/sessions/{session['id']}/step", json={"steps": 1000}
        ).get_json()["data"]
        self.assertEqual(data["status"], "exhausted")
        self.assertEqual(data["pointsEarned"], 0)

    def test_level_preset(self):
        session = self.start(level="easy")
        self.assertEqual(session["mode"], "brute-force")
        self.assertEqual(session["targetLength"], 4)
        self.assertEqual(session["searchSpace"], 10 ** 4)
        self.assertEqual(self.client.post("/api/labs/crack/sessions", json={"level": "insane"}).status_code, 400)

    def test_invalid_configuration(self):
        resp = self.client.post(
            "/api/labs/crack/sessions",
            json={"lowercase": False, "uppercase": False, "digits": False, "symbols": False},
        )
        self.assertEqual(resp.status_code, 400)
        resp = self.client.post("/api/labs/crack/sessions", json={"mode": "rainbow"})
        self.assertEqual(resp.status_code, 400)

    def test_stop_session(self):
        session = self.start(mode="brute-force", length=4)
        self.client.post(f"/api/labs/crack/sessions/{session['id']}/step", json={"steps": 3})
        resp = self.client.delete(f"/api/labs/crack/sessions/{session['id']}")
        self.assertEqual(resp.get_json()["data"]["status"], "stopped")
        self.assertEqual(resp.get_json()["data"]["attempts"], 3)
        self.assertEqual(self.client.delete(f"/api/labs/crack/sessions/{session['id']}").status_code, 404)

    def test_auto_run_ticks_on_scheduler(self):
        session = self.start(length=1, lowercase=False, digits=True, mode="brute-force", autoRun=True)
        for _ in range(10):
            self.scheduler.run_pending()
        data = self.client.get(f"/api/labs/crack/sessions/{session['id']}").get_json()["data"]
        self.assertEqual(data["status"], "cracked")
        self.assertEqual(data["pointsEarned"], 50)

    def test_sessions_are_private(self):
        session = self.start()
        self.client.post("/api/auth/logout")
        self.register("bob")
        resp = self.client.get(f"/api/labs/crack/sessions/{session['id']}")
        self.assertEqual(resp.status_code, 404)

    def test_strength(self):
        resp = self.client.post("/api/labs/crack/strength", json={"password": "Tr0ub4dor&3"})
        self.assertEqual(resp.get_json()["data"]["label"], "very strong")

    def test_length_is_bounded(self):
        for length in (0, 17, 10 ** 8):
            resp = self.client.post("/api/labs/crack/sessions", json={"length": length})
            self.assertEqual(resp.status_code, 400)
            self.assertIn("between 1 and 16", resp.get_json()["error"])
        self.assertEqual(self.start(length=16)["targetLength"], 16)
