from utils.security import redact_secrets_from_text


def test_redact_query_params():
    text = "GET https://api.example/search?q=dior&api_key=abc123&page=2"
    assert redact_secrets_from_text(text) == "GET https://api.example/search?q=dior&api_key=[REDACTED]&page=2"


def test_redact_headers():
    text = "headers={'X-RapidAPI-Key': 'abc123', 'x-api-key': 'zzz'}"
    out = redact_secrets_from_text(text)
    assert "abc123" not in out
    assert "zzz" not in out


def test_redact_bearer_and_empty():
    assert redact_secrets_from_text("Authorization: Bearer tok.en") == "Authorization: Bearer [REDACTED]"
    assert redact_secrets_from_text("") == ""
