from invoicedesk.app.core.security import get_password_hash, verify_password


def test_password_hashing_not_plain():
    plain = "password123"
    hashed = get_password_hash(plain)
    assert hashed and hashed != plain


def test_hashes_are_salted():
    assert get_password_hash("secret") != get_password_hash("secret")


def test_verify_password():
    hashed = get_password_hash("secret")
    assert verify_password("secret", hashed)
    assert not verify_password("wrong", hashed)


def test_missing_or_legacy_hash_never_verifies():
    assert not verify_password("secret", None)
    assert not verify_password("admin123", "admin123")
