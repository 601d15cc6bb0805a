"""Webhook system: signed push ingress and detached deploys."""

from hookdeploy.webhook.deployer import Deployer
from hookdeploy.webhook.models import DeployResult, WebhookRequest
from hookdeploy.webhook.server import WebhookServer
from hookdeploy.webhook.signature import sign_payload, verify_signature

__all__ = [
    "DeployResult",
    "Deployer",
    "WebhookRequest",
    "WebhookServer",
    "sign_payload",
    "verify_signature",
]
