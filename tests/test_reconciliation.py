"""Tests for the deterministic receipt field rules."""
import pytest

from reconciliation import find_labeled_utr, reconcile_details, strip_bank_parenthetical


class TestFindLabeledUtr:

    @pytest.mark.parametrize("text, expected", [
        ("UTR: 123456789012", "123456789012"),
        ("UTR No. 412345678901", "412345678901"),
        ("UTR Number\n412345678901", "412345678901"),
        ("utr - SBIN0424123456789", "SBIN0424123456789"),
    ])
    def test_labeled_values(self, text, expected):
        assert find_labeled_utr(text) == expected

    def test_unlabeled_text(self, gpay_receipt_text):
        assert find_labeled_utr(gpay_receipt_text) is None
        assert find_labeled_utr(None) is None


class TestStripBankParenthetical:

    def test_bank_name_removed(self):
        assert strip_bank_parenthetical("ZAINUL BHAGNAGRI (IDBI Bank)") == ("ZAINUL BHAGNAGRI", "IDBI Bank")

    def test_bank_code_removed(self):
        assert strip_bank_parenthetical("Jane Doe (SBI)") == ("Jane Doe", "SBI")

    def test_other_parentheticals_kept(self):
        assert strip_bank_parenthetical("Jane Doe (Trustee)") == ("Jane Doe (Trustee)", None)


class TestReconcileDetails:

    def test_labeled_utr_never_lands_in_transaction_id(self):
        record = reconcile_details({"transactionId": "123456789012", "amount": 500}, "Paid\nUTR: 123456789012")

        assert record["utrNumber"] == "123456789012"
        assert "transactionId" not in record

    def test_phonepe_transaction_id_replaces_utr(self, phonepe_receipt_text):
        record = reconcile_details(
            {"transactionId": "123456789012", "phonePeTransactionId": "T2408141148123456789012"},
            phonepe_receipt_text,
        )

        assert record["transactionId"] == "T2408141148123456789012"
        assert record["utrNumber"] == "123456789012"

    def test_utr_taken_from_text_when_model_missed_it(self, phonepe_receipt_text):
        record = reconcile_details({"transactionId": "T2408141148123456789012"}, phonepe_receipt_text)
        assert record["utrNumber"] == "123456789012"
        assert record["transactionId"] == "T2408141148123456789012"

    def test_google_pay_utr_requires_explicit_label(self, gpay_receipt_text):
        record = reconcile_details(
            {
                "paymentApp": "Google Pay",
                "transactionId": "425612345678",
                "utrNumber": "425612345678",
                "googlePayTransactionId": "CICAgJDq7oKZAQ",
            },
            gpay_receipt_text,
        )

        assert "utrNumber" not in record
        assert record["transactionId"] == "425612345678"
        assert record["googlePayTransactionId"] == "CICAgJDq7oKZAQ"

    def test_google_transaction_id_never_used_as_transaction_id(self, gpay_receipt_text):
        record = reconcile_details(
            {"transactionId": "CICAgJDq7oKZAQ", "googlePayTransactionId": "CICAgJDq7oKZAQ"},
            gpay_receipt_text,
        )
        assert "transactionId" not in record

    def test_names_lose_bank_parentheticals(self):
        record = reconcile_details({
            "senderName": "ZAINUL BHAGNAGRI (IDBI Bank)",
            "googlePayRecipientName": "FATIMA BEGUM (State Bank of India)",
        })

        assert record["senderName"] == "ZAINUL BHAGNAGRI"
        assert record["senderBankName"] == "IDBI Bank"
        assert record["googlePayRecipientName"] == "FATIMA BEGUM"
        assert record["recipientName"] == "FATIMA BEGUM"

    def test_upi_ids_must_contain_at_sign(self):
        record = reconcile_details({"senderUpiId": "zainul.b okicici", "recipientUpiId": "fatima.begum @oksbi"})

        assert "senderUpiId" not in record
        assert record["recipientUpiId"] == "fatima.begum@oksbi"

    def test_absent_and_placeholder_fields_stay_absent(self):
        record = reconcile_details({
            "amount": "₹1,500.00", "notes": None, "status": "N/A", "recipientPhone": "",
            "purpose": "Not Found", "extra": {"nested": True},
        })

        assert record == {"amount": 1500.0}

    def test_non_numeric_amount_dropped(self):
        assert "amount" not in reconcile_details({"amount": "see below"})

    def test_payment_method_and_app_defaults(self):
        record = reconcile_details({"paymentMethod": "UPI", "senderPaymentApp": "PhonePe", "date": "14/08/2024"})

        assert record["paymentMethod"] == "Online (UPI/Card)"
        assert record["paymentApp"] == "PhonePe"
        assert record["date"] == "2024-08-14"

    def test_numeric_scalars_become_strings(self):
        record = reconcile_details({"recipientPhone": 9876543210, "amount": 100})
        assert record["recipientPhone"] == "9876543210"
        assert record["amount"] == 100.0

    def test_paytm_reference_kept_as_transaction_id_without_utr_label(self):
        record = reconcile_details(
            {
                "paymentApp": "Paytm",
                "transactionId": "412345678901",
                "utrNumber": "412345678901",
                "paytmUpiReferenceNo": "412345678901",
                "amount": 100,
            },
            "Paytm\nUPI Reference No: 412345678901",
        )

        assert record["transactionId"] == "412345678901"
        assert record["paytmUpiReferenceNo"] == "412345678901"

    def test_google_transaction_id_never_used_as_utr(self):
        record = reconcile_details(
            {"utrNumber": "CICAgJDq7oKZAQ", "googlePayTransactionId": "CICAgJDq7oKZAQ", "amount": 10},
            "Google transaction ID\nCICAgJDq7oKZAQ",
        )

        assert "utrNumber" not in record
        assert record["googlePayTransactionId"] == "CICAgJDq7oKZAQ"

    def test_labeled_utr_wins_even_when_it_matches_google_id(self):
        record = reconcile_details(
            {"googlePayTransactionId": "AB12345678CD", "paymentApp": "Google Pay"},
            "G Pay\nUTR: AB12345678CD\nGoogle transaction ID\nAB12345678CD",
        )

        assert record["utrNumber"] == "AB12345678CD"
