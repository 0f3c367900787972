from jetset.error_handler import ErrorHandler


def test_handle_exception_returns_payload():
    eh = ErrorHandler()
    out = eh.handle_exception(Exception("boom"), context={"operation": "initiate-payment"})
    assert out == {"success": False, "error": "Internal server error", "details": "boom"}


def test_handle_exception_custom_error():
    out = ErrorHandler().handle_exception(ValueError("bad order"), error="Failed to void payment")
    assert out["error"] == "Failed to void payment"
    assert out["details"] == "bad order"
