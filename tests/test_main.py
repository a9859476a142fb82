import json
import threading
import time
import unittest
from datetime import timedelta

from fastapi.testclient import TestClient

from rapidread.config import settings

settings.LOG_TO_FILE = False

from rapidread import main  # noqa: E402


class ApiTests(unittest.TestCase):
    def setUp(self) -> None:
        main.content_library.delay_ms = 0
        self.client_cm = TestClient(main.app)
        self.client = self.client_cm.__enter__()
        self.addCleanup(self.client_cm.__exit__, None, None, None)

    def new_session(self) -> dict:
        response = self.client.post("/api/session")
        self.assertEqual(response.status_code, 200)
        self.assertIn(settings.SESSION_COOKIE_NAME, response.cookies)
        return response.json()

    def wait_for_phase(self, phase: str, timeout: float = 5.0) -> dict:
        deadline = time.monotonic() + timeout
        while True:
            state = self.client.get("/api/state").json()
            if state["phase"] == phase:
                return state
            if time.monotonic() > deadline:
                self.fail(f"phase {phase} not reached, last was {state['phase']}")
            time.sleep(0.05)

    def test_requests_without_session_are_rejected(self) -> None:
        for path in ("/api/start", "/api/pause", "/api/reset", "/api/focus"):
            response = self.client.post(path)
            self.assertEqual(response.status_code, 401)
        self.assertEqual(self.client.get("/api/state").status_code, 401)

    def test_new_session_is_idle(self) -> None:
        state = self.new_session()
        self.assertEqual(state["phase"], "idle")
        self.assertEqual(state["rate_per_minute"], settings.DEFAULT_RATE)

    def test_start_without_text_reports_error(self) -> None:
        self.new_session()
        state = self.client.post("/api/start").json()
        self.assertEqual(state["phase"], "idle")
        self.assertTrue(state["ui"]["error_message"])

    def test_playback_commands(self) -> None:
        self.new_session()
        state = self.client.post("/api/text", data={"text": "the quick brown fox jumps"}).json()
        self.assertEqual(state["phase"], "loaded")
        self.assertEqual(state["words_total"], 5)

        state = self.client.post("/api/speed", data={"speed": 50}).json()
        self.assertEqual(state["rate_per_minute"], 100)

        state = self.client.post("/api/start").json()
        self.assertEqual(state["phase"], "playing")
        self.assertTrue(state["running"])

        state = self.client.post("/api/pause").json()
        self.assertEqual(state["phase"], "loaded")
        self.assertFalse(state["running"])

        state = self.client.post("/api/reset").json()
        self.assertEqual(state["cursor"], 0)

    def test_full_reading_and_quiz_flow(self) -> None:
        self.new_session()
        self.client.post("/api/text", data={"text": "the quick brown fox jumps"})
        self.client.post("/api/speed", data={"speed": 1000})
        self.client.post("/api/start")

        state = self.wait_for_phase("quiz_active")
        self.assertEqual(len(state["quiz"]["questions"]), 3)

        for index in range(3):
            state = self.client.post(
                "/api/answer", data={"question_index": index, "selected_option_index": 0}
            ).json()
        self.assertEqual(state["phase"], "quiz_completed")
        self.assertEqual(state["quiz"]["result"]["comprehension_rate"], 100)

        state = self.client.post("/api/quiz/close").json()
        self.assertEqual(state["phase"], "loaded")
        self.assertFalse(state["quiz_visible"])

    def test_generate_text(self) -> None:
        self.new_session()
        state = self.client.post("/api/generate", data={"topic": "photosynthesis"}).json()
        self.assertEqual(state["phase"], "loaded")
        self.assertEqual(state["current_word"], "Photosynthesis")
        self.assertFalse(state["ui"]["loading"])

        state = self.client.post("/api/generate", data={"topic": "   "}).json()
        self.assertTrue(state["ui"]["error_message"])

    def test_focus_mode(self) -> None:
        self.new_session()
        self.assertTrue(self.client.post("/api/focus").json()["ui"]["focus_mode"])

    def test_delete_session(self) -> None:
        self.new_session()
        response = self.client.delete("/api/session")
        self.assertEqual(response.json(), {"status": "success"})
        self.client.cookies.clear()
        self.assertEqual(self.client.get("/api/state").status_code, 401)

    def test_stream_replays_state_and_ends_with_the_session(self) -> None:
        self.new_session()
        session_id = self.client.cookies.get(settings.SESSION_COOKIE_NAME)
        closer = threading.Timer(
            0.3, lambda: self.client.portal.call(main.end_session, session_id)
        )
        closer.start()
        self.addCleanup(closer.cancel)

        response = self.client.get("/api/stream")
        closer.join()
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/event-stream"))
        self.assertTrue(response.text.startswith("data: "))
        first_event = response.text.split("\n\n")[0][len("data: "):]
        self.assertEqual(json.loads(first_event)["phase"], "idle")
        self.assertNotIn(session_id, main.sessions)

    def test_stream_without_session_is_rejected(self) -> None:
        self.assertEqual(self.client.get("/api/stream").status_code, 401)

    def test_expired_session(self) -> None:
        self.new_session()
        session_id = self.client.cookies.get(settings.SESSION_COOKIE_NAME)
        main.sessions[session_id].created_at -= timedelta(
            minutes=settings.SESSION_TIMEOUT_MINUTES + 1
        )
        self.assertEqual(self.client.get("/api/state").status_code, 401)
        self.assertNotIn(session_id, main.sessions)


if __name__ == "__main__":
    unittest.main()
