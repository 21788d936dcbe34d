from __future__ import annotations

import io
import json
import tempfile
import unittest
from pathlib import Path

from tweetvid.event_log import EventLogger, NullEventLogger, describe_exception


class TestEventLogger(unittest.TestCase):
    def test_writes_one_json_object_per_line(self) -> None:
        stream = io.StringIO()
        log = EventLogger(stream=stream, session_id="s1")

        log.info("cache_hit", url="https://x.com/a/status/1", tweet_id="1")
        log.warning("download_failed", kind="no_video_present")

        lines = stream.getvalue().splitlines()
        self.assertEqual(len(lines), 2)

        first = json.loads(lines[0])
        self.assertEqual(first["event"], "cache_hit")
        self.assertEqual(first["level"], "INFO")
        self.assertEqual(first["session_id"], "s1")
        self.assertEqual(first["url"], "https://x.com/a/status/1")
        self.assertEqual(first["tweet_id"], "1")
        self.assertNotIn("data", first)

        second = json.loads(lines[1])
        self.assertEqual(second["level"], "WARN")
        self.assertNotIn("url", second)
        self.assertEqual(second["data"], {"kind": "no_video_present"})

    def test_exception_records_traceback(self) -> None:
        stream = io.StringIO()
        log = EventLogger(stream=stream)

        try:
            raise ValueError("bad thing")
        except ValueError as e:
            log.exception("download_failed", exc=e)

        record = json.loads(stream.getvalue())
        self.assertEqual(record["level"], "ERROR")
        self.assertEqual(record["data"]["error"]["type"], "ValueError")
        self.assertIn("bad thing", record["data"]["error"]["traceback"])

    def test_long_exception_messages_are_clipped(self) -> None:
        err = describe_exception(RuntimeError("x" * 5000))

        self.assertEqual(err["type"], "RuntimeError")
        self.assertEqual(len(err["message"]), 2000)
        self.assertTrue(err["message"].endswith("…"))

    def test_close_leaves_borrowed_stream_open(self) -> None:
        stream = io.StringIO()
        log = EventLogger(stream=stream)
        log.close()
        log.info("still_here")

        self.assertFalse(stream.closed)
        self.assertEqual(json.loads(stream.getvalue())["event"], "still_here")

    def test_file_logger_appends(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "logs" / "events.jsonl"

            for event in ("service_starting", "service_stopped"):
                log = EventLogger.open(path)
                log.info(event)
                log.close()

            events = [json.loads(ln)["event"] for ln in path.read_text(encoding="utf-8").splitlines()]
        self.assertEqual(events, ["service_starting", "service_stopped"])

    def test_null_logger_is_silent(self) -> None:
        log = NullEventLogger()
        log.info("anything", extra=1)
        log.close()

    def test_rejects_path_and_stream(self) -> None:
        with self.assertRaises(ValueError):
            EventLogger("x.jsonl", stream=io.StringIO())


if __name__ == "__main__":
    unittest.main()
