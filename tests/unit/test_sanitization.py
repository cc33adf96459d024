from utils.logger import sanitize_log_data

def test_otp_redaction():
    data = {"order_id": "FC1", "otp": "482913"}
    sanitized = sanitize_log_data(data)

    assert sanitized["order_id"] == "FC1"
    assert sanitized["otp"] == "***REDACTED***"


def test_signature_redaction():
    data = {"razorpay_order_id": "order_abc", "razorpay_signature": "9f86d081884c7d659a2feaa0c55ad015"}
    sanitized = sanitize_log_data(data)

    assert sanitized["razorpay_order_id"] == "order_abc"
    assert sanitized["razorpay_signature"] == "***REDACTED***"


def test_token_partial_redaction():
    data = {"access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9.long_token_here"}
    sanitized = sanitize_log_data(data)

    assert len(sanitized["access_token"]) == 11
    assert sanitized["access_token"].startswith(data["access_token"][:8])
    assert sanitized["access_token"].endswith("...")
    assert "long_token_here" not in sanitized["access_token"]


def test_nested_dict_sanitization():
    data = {
        "order": {
            "order_id": "FC1",
            "delivery_otp": "482913"
        }
    }
    sanitized = sanitize_log_data(data)

    assert sanitized["order"]["order_id"] == data["order"]["order_id"]
    assert sanitized["order"]["delivery_otp"] == "***REDACTED***"


def test_none_values_left_alone():
    sanitized = sanitize_log_data({"otp": None})
    assert sanitized["otp"] is None


def test_non_sensitive_data_unchanged():
    data = {"user_id": "cust-1", "status": "Processing", "total_amount": "500.00"}
    sanitized = sanitize_log_data(data)

    assert sanitized == data


def test_original_dict_not_modified():
    data = {"otp": "482913"}
    sanitize_log_data(data)
    assert data["otp"] == "482913"
