"""End-to-end tests for webhook verification."""

from tests.payloads import VERIFY_TOKEN


class TestWebhookVerification:
    """Test Facebook webhook verification endpoint."""

    def test_webhook_verification_success(self, test_client):
        """Test webhook verification with correct token."""
        response = test_client.get(
            "/webhook",
            params={
                "hub.mode": "subscribe",
                "hub.verify_token": VERIFY_TOKEN,
                "hub.challenge": "challenge-123",
            },
        )

        assert response.status_code == 200
        assert response.text == "challenge-123"

    def test_webhook_verification_fails_invalid_token(self, test_client):
        """Test webhook verification fails with incorrect token."""
        response = test_client.get(
            "/webhook",
            params={
                "hub.mode": "subscribe",
                "hub.verify_token": "wrong-token",
                "hub.challenge": "challenge-123",
            },
        )

        assert response.status_code == 403
        assert response.text == "ERROR"

    def test_webhook_verification_fails_wrong_mode(self, test_client):
        """Test webhook verification fails with wrong mode."""
        response = test_client.get(
            "/webhook",
            params={
                "hub.mode": "unsubscribe",
                "hub.verify_token": VERIFY_TOKEN,
                "hub.challenge": "challenge-123",
            },
        )

        assert response.status_code == 403
        assert response.text == "ERROR"

    def test_webhook_verification_missing_parameters(self, test_client):
        """Test webhook verification without query parameters."""
        response = test_client.get("/webhook")

        assert response.status_code == 403
        assert response.text == "ERROR"

    def test_webhook_verification_missing_challenge(self, test_client):
        """Valid handshake without a challenge answers with an empty body."""
        response = test_client.get(
            "/webhook",
            params={"hub.mode": "subscribe", "hub.verify_token": VERIFY_TOKEN},
        )

        assert response.status_code == 200
        assert response.text == ""
