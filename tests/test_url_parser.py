from __future__ import annotations

import unittest

from tweetvid.url_parser import is_valid_url, parse_identifier


class TestParseIdentifier(unittest.TestCase):
    def test_accepts_known_url_forms(self) -> None:
        cases = {
            "https://x.com/alice/status/1234567890123456789": "1234567890123456789",
            "https://twitter.com/bob_99/status/1234567890123456789": "1234567890123456789",
            "https://mobile.twitter.com/bob/status/222222222222222?s=20": "222222222222222",
            "http://twitter.com/#!/carol/status/987654321098765": "987654321098765",
            "https://twitter.com/dave/statuses/111111111111111111": "111111111111111111",
            "x.com/erin/status/555555555555555/video/1": "555555555555555",
            "  https://x.com/alice/status/1234567890123456789  ": "1234567890123456789",
        }
        for url, expected in cases.items():
            with self.subTest(url=url):
                self.assertEqual(parse_identifier(url), expected)

    def test_accepts_bare_identifier(self) -> None:
        self.assertEqual(parse_identifier("123456789012345"), "123456789012345")
        self.assertEqual(parse_identifier(" 1234567890123456789 "), "1234567890123456789")

    def test_rejects_everything_else(self) -> None:
        for value in [
            "",
            "   ",
            "12345678901234",  # 14 digits
            "12345678901234a",
            "https://example.com/alice/status/1234567890123456789",
            "https://x.com/alice",
            "https://x.com/alice/likes/1234567890123456789",
            "not a url",
            None,
            1234567890123456789,
        ]:
            with self.subTest(value=value):
                self.assertIsNone(parse_identifier(value))

    def test_rejects_short_status_ids(self) -> None:
        for url in [
            "https://x.com/alice/status/42",
            "https://mobile.twitter.com/bob/status/42?s=20",
            "https://x.com/a/status/1",
            "https://twitter.com/bob/status/12345678901234",
        ]:
            with self.subTest(url=url):
                self.assertIsNone(parse_identifier(url))
                self.assertFalse(is_valid_url(url))

    def test_rejects_lookalike_hosts(self) -> None:
        for url in [
            "https://fox.com/alice/status/1234567890123456789",
            "https://netflix.com/alice/status/1234567890123456789",
            "https://twitter.com.evil/alice/status/1234567890123456789",
        ]:
            with self.subTest(url=url):
                self.assertIsNone(parse_identifier(url))

    def test_is_valid_url_matches_parse(self) -> None:
        self.assertTrue(is_valid_url("https://x.com/alice/status/1234567890123456789"))
        self.assertFalse(is_valid_url("https://x.com/alice"))


if __name__ == "__main__":
    unittest.main()
