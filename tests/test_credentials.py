from oauth2_admin.service.credentials import (
    CLIENT_ID_LENGTH,
    CLIENT_SECRET_LENGTH,
    generate_client_id,
    generate_client_secret,
    generate_token,
    hash_secret,
    verify_secret,
)


class TestGeneration:
    def test_lengths(self):
        assert len(generate_client_id()) == CLIENT_ID_LENGTH
        assert len(generate_client_secret()) == CLIENT_SECRET_LENGTH
        assert len(generate_token(7)) == 7

    def test_url_safe(self):
        allowed = set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")
        assert set(generate_client_secret()) <= allowed

    def test_unique(self):
        assert len({generate_client_id() for _ in range(50)}) == 50


class TestHashing:
    def test_hash_does_not_contain_plaintext(self):
        hashed = hash_secret("correct horse battery staple")
        assert "correct horse" not in hashed
        assert hashed.startswith("$argon2")

    def test_verify(self):
        hashed = hash_secret("s3cret-value")
        assert verify_secret("s3cret-value", hashed)
        assert not verify_secret("s3cret-valuE", hashed)

    def test_salted(self):
        assert hash_secret("same") != hash_secret("same")

    def test_malformed_hash_never_verifies(self):
        assert not verify_secret("anything", "not-a-hash")
