import unittest

from jose import jwt

from species_catalog.auth import create_session_token, decode_session_token
from species_catalog.config import get_settings


class SessionTokenTests(unittest.TestCase):
    def test_round_trip(self):
        token = create_session_token("profile-1")
        self.assertEqual(decode_session_token(token), "profile-1")

    def test_expired_token_is_rejected(self):
        token = create_session_token("profile-1", expires_minutes=-5)
        self.assertIsNone(decode_session_token(token))

    def test_foreign_signature_is_rejected(self):
        token = jwt.encode(
            {"sub": "profile-1"},
            "some-other-secret-some-other-secret",
            algorithm=get_settings().session_algorithm,
        )
        self.assertIsNone(decode_session_token(token))

    def test_token_without_subject_is_rejected(self):
        settings = get_settings()
        token = jwt.encode(
            {"role": "anon"}, settings.session_secret, algorithm=settings.session_algorithm
        )
        self.assertIsNone(decode_session_token(token))


if __name__ == "__main__":
    unittest.main()
