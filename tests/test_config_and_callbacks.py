import unittest

from infrastructure.config import load_settings
from interfaces.telegram.callback_data import (
    encode_join_choice,
    encode_send_confirmation,
    parse_join_choice,
    parse_send_confirmation,
)


class LoadSettingsTests(unittest.TestCase):
    def test_defaults(self):
        settings = load_settings({})
        self.assertEqual(settings.store_backend, "sqlite")
        self.assertEqual(settings.db_path, "wallet.db")
        self.assertEqual(settings.starting_balance, 1000)
        self.assertEqual(settings.transaction_retention, 100)
        self.assertFalse(settings.debug)
        self.assertIsNone(settings.discord_token)
        self.assertEqual(settings.postgres_params["port"], 5432)

    def test_values_from_environment(self):
        settings = load_settings(
            {
                "STORE_BACKEND": "Memory",
                "STARTING_BALANCE": "500",
                "TRANSACTION_RETENTION": "20",
                "DEBUG": "true",
                "TELEGRAM_TOKEN": "abc",
                "PGPORT": "6543",
            }
        )
        self.assertEqual(settings.store_backend, "memory")
        self.assertEqual(settings.starting_balance, 500)
        self.assertEqual(settings.transaction_retention, 20)
        self.assertTrue(settings.debug)
        self.assertEqual(settings.telegram_token, "abc")
        self.assertEqual(settings.postgres_params["port"], 6543)

    def test_invalid_values_raise(self):
        for env in (
            {"STORE_BACKEND": "redis"},
            {"STARTING_BALANCE": "lots"},
            {"STARTING_BALANCE": "-1"},
            {"TRANSACTION_RETENTION": "0"},
        ):
            with self.assertRaises(ValueError):
                load_settings(env)


class CallbackDataTests(unittest.TestCase):
    def test_join_choice(self):
        data = encode_join_choice("racing")
        self.assertEqual(data, "join:racing")
        self.assertEqual(parse_join_choice(data), "racing")

    def test_send_confirmation(self):
        self.assertEqual(
            parse_send_confirmation(encode_send_confirmation("@bob", 25, accepted=True)),
            (True, "@bob", 25),
        )
        self.assertEqual(
            parse_send_confirmation(encode_send_confirmation("0xabc", 7, accepted=False)),
            (False, "0xabc", 7),
        )

    def test_malformed_callback_data(self):
        for data in ("join:", "join:a:b", "from:racing"):
            with self.assertRaises(ValueError):
                parse_join_choice(data)
        for data in ("send:maybe:bob:1", "send:yes:bob", "send:yes:bob:x"):
            with self.assertRaises(ValueError):
                parse_send_confirmation(data)


if __name__ == "__main__":
    unittest.main()
