"""Tests for the exception hierarchy and ErrorReport."""
from __future__ import annotations

import unittest

from bulkorder.core.exceptions import (
    DeliveryLockedError,
    ErrorReport,
    LocalValidationError,
    ProjectError,
    SubmissionError,
    TransportError,
)


class TestExceptions(unittest.TestCase):
    def test_local_validation_carries_every_message(self):
        exc = LocalValidationError(["a", "b"])
        self.assertEqual(exc.messages, ["a", "b"])
        self.assertEqual(exc.to_dict()["details"]["errors"], ["a", "b"])
        self.assertEqual(exc.http_status, 400)

    def test_locked_is_a_validation_error(self):
        exc = DeliveryLockedError(["locked"])
        self.assertIsInstance(exc, LocalValidationError)
        self.assertEqual(exc.code, "DELIVERY_LOCKED")
        self.assertEqual(exc.http_status, 409)

    def test_log_extra_lifts_order_context(self):
        exc = LocalValidationError(["a"], details={"order_id": 42, "status": "Draft"})
        self.assertEqual(exc.log_extra(), {"order_id": 42})
        self.assertTrue(exc.is_client_error)
        self.assertFalse(TransportError("down").is_client_error)
        self.assertFalse(exc.retryable)

    def test_transport_cause(self):
        cause = OSError("reset")
        exc = TransportError("Network error", cause=cause)
        self.assertIsInstance(exc, ProjectError)
        self.assertTrue(exc.retryable)
        self.assertEqual(exc.to_dict()["cause"], "reset")


class TestErrorReport(unittest.TestCase):
    def test_merges_local_and_backend_errors(self):
        report = ErrorReport()
        report.merge_local(LocalValidationError(["Sand: All delivery slots must have a truck type."]))
        report.merge_submission(SubmissionError(
            "The given data was invalid.",
            field_errors={"items_add.0.deliveries.1.delivery_date": ["Date is required."]},
        ))
        self.assertEqual(report.messages(), [
            "Sand: All delivery slots must have a truck type.",
            "Date is required.",
        ])
        self.assertIn("items_add.0.deliveries.1.delivery_date", report.to_dict()["errors"])

    def test_submission_without_fields_uses_message(self):
        report = ErrorReport().merge_submission(SubmissionError("Order is locked"))
        self.assertEqual(report.to_dict(), {"errors": {"_general": ["Order is locked"]}})

    def test_duplicates_collapse(self):
        report = ErrorReport()
        report.add("", "x")
        report.add("_general", "x")
        self.assertEqual(report.messages(), ["x"])
        self.assertFalse(report.is_empty)
        self.assertTrue(ErrorReport().is_empty)
