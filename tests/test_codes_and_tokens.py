"""
Tests for join codes, verification codes and admin tokens
"""

import re

from fastapi.security import HTTPAuthorizationCredentials

from allocator.utils.codes import JOIN_CODE_ALPHABET, generate_join_code, generate_verification_code
from allocator.utils.security import RateLimiter, hash_token, issue_admin_token, resolve_token, verify_token

JOIN_CODE_RE = re.compile(r"^[A-Z2-9]{4}-[A-Z2-9]{4}$")


def test_join_code_format():
    """Join codes are two groups of four from the unambiguous alphabet"""
    for _ in range(500):
        code = generate_join_code()
        assert JOIN_CODE_RE.match(code)
        assert not set(code) & set("IO01")


def test_join_code_alphabet_excludes_ambiguous_characters():
    assert len(JOIN_CODE_ALPHABET) == 32
    for ch in "IO01":
        assert ch not in JOIN_CODE_ALPHABET


def test_verification_code_is_six_digits():
    for _ in range(500):
        code = generate_verification_code()
        assert re.fullmatch(r"[1-9]\d{5}", code)


def test_admin_token_only_digest_stored():
    """The digest differs from the plaintext and verifies it"""
    plaintext, digest = issue_admin_token()

    assert len(plaintext) == 64
    assert plaintext != digest
    assert digest == hash_token(plaintext)
    assert verify_token(plaintext, digest)
    assert not verify_token(plaintext + "x", digest)


def test_admin_tokens_are_unique():
    tokens = {issue_admin_token()[0] for _ in range(100)}
    assert len(tokens) == 100


def test_query_token_takes_precedence_over_bearer():
    credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="from-header")

    assert resolve_token("from-query", credentials) == "from-query"
    assert resolve_token(None, credentials) == "from-header"
    assert resolve_token("", credentials) == "from-header"
    assert resolve_token(None, None) is None


def test_rate_limiter_blocks_after_limit():
    limiter = RateLimiter(limit_per_minute=3)

    assert [limiter.check("1.2.3.4") for _ in range(4)] == [True, True, True, False]
    # Other clients are tracked separately
    assert limiter.check("5.6.7.8")


def test_rate_limiter_window_slides():
    now = [0.0]
    limiter = RateLimiter(limit_per_minute=1, clock=lambda: now[0])

    assert limiter.check("1.2.3.4")
    assert not limiter.check("1.2.3.4")
    now[0] = 61.0
    assert limiter.check("1.2.3.4")


def test_rate_limiter_forgets_idle_clients():
    now = [0.0]
    limiter = RateLimiter(limit_per_minute=2, clock=lambda: now[0])
    limiter.check("1.2.3.4")

    now[0] = 120.0
    limiter.check("5.6.7.8")

    assert "1.2.3.4" not in limiter.requests
    assert "5.6.7.8" in limiter.requests
