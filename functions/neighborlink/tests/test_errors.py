import unittest

import requests

from neighborlink.errors import (
    ErrorSeverity,
    ErrorType,
    FeatureDisabledError,
    NotFoundError,
    ValidationError,
    classify_error,
    with_retry,
)


class IntegrityError(Exception):
    def __init__(self, message, pgcode):
        super().__init__(message)
        self.pgcode = pgcode


class HttpError(Exception):
    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


class ClassifyErrorTests(unittest.TestCase):
    def test_service_errors_keep_their_category(self):
        info = classify_error(ValidationError("Amount must be positive"))
        self.assertEqual(info.type, ErrorType.VALIDATION)
        self.assertEqual(info.user_message, "Amount must be positive")

        info = classify_error(NotFoundError("Campaign not found"))
        self.assertEqual(info.type, ErrorType.NOT_FOUND)
        self.assertEqual(info.code, "NF_001")

    def test_network(self):
        for error in (ConnectionError("boom"), requests.exceptions.Timeout("slow")):
            info = classify_error(error)
            self.assertEqual(info.type, ErrorType.NETWORK)
            self.assertEqual(info.code, "NET_001")

    def test_authentication(self):
        self.assertEqual(classify_error(Exception("Invalid login credentials")).code, "AUTH_001")
        self.assertEqual(classify_error(Exception("Email not confirmed")).code, "AUTH_003")
        self.assertEqual(classify_error(Exception("JWT expired")).code, "AUTH_002")
        self.assertEqual(classify_error(HttpError("nope", 401)).code, "AUTH_002")

    def test_authorization(self):
        info = classify_error(HttpError("forbidden", 403))
        self.assertEqual(info.type, ErrorType.AUTHORIZATION)

    def test_database_constraints(self):
        info = classify_error(
            IntegrityError(
                'duplicate key value violates unique constraint "profiles_email_key"',
                "23505",
            )
        )
        self.assertEqual(info.type, ErrorType.DATABASE)
        self.assertEqual(info.code, "23505")
        self.assertEqual(info.user_message, "This email is already registered.")

        info = classify_error(IntegrityError("insert failed", "23503"))
        self.assertIn("being used elsewhere", info.user_message)

    def test_not_found_server_and_unknown(self):
        self.assertEqual(classify_error(HttpError("missing", 404)).type, ErrorType.NOT_FOUND)

        info = classify_error(Exception("Internal server error"))
        self.assertEqual(info.type, ErrorType.SERVER)
        self.assertEqual(info.severity, ErrorSeverity.CRITICAL)

        self.assertEqual(classify_error(ValueError("bad input")).code, "VAL_001")
        self.assertEqual(classify_error(Exception("weird")).code, "UNK_001")

    def test_aborted(self):
        info = classify_error(Exception("Request aborted"))
        self.assertEqual(info.type, ErrorType.ABORTED)
        self.assertEqual(info.severity, ErrorSeverity.LOW)

    def test_disabled_feature_status(self):
        self.assertEqual(FeatureDisabledError("off").status, "disabled")
        self.assertEqual(FeatureDisabledError("x", status="no_subscription").status, "no_subscription")
        self.assertEqual(ValidationError("x").status, "error")


class WithRetryTests(unittest.TestCase):
    def test_retries_with_backoff(self):
        calls = []
        delays = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("temporary")
            return "ok"

        self.assertEqual(with_retry(flaky, sleep=delays.append), "ok")
        self.assertEqual(delays, [1.0, 2.0])

    def test_gives_up_after_max_retries(self):
        calls = []

        def down():
            calls.append(1)
            raise ConnectionError("down")

        with self.assertRaises(ConnectionError):
            with_retry(down, max_retries=2, sleep=lambda _: None)
        self.assertEqual(len(calls), 3)

    def test_validation_errors_are_not_retried(self):
        calls = []

        def invalid():
            calls.append(1)
            raise ValidationError("bad")

        with self.assertRaises(ValidationError):
            with_retry(invalid, sleep=lambda _: None)
        self.assertEqual(len(calls), 1)


if __name__ == "__main__":
    unittest.main()
