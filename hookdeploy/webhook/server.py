"""Webhook HTTP server: aiohttp-based ingress for push notifications."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aiohttp import ClientPayloadError, web

from hookdeploy.log_context import set_log_context
from hookdeploy.webhook.filters import (
    DELIVERY_HEADER,
    EVENT_HEADER,
    MAIN_REF,
    is_push_event,
    pushed_ref,
)
from hookdeploy.webhook.models import WebhookRequest
from hookdeploy.webhook.signature import SIGNATURE_HEADER, verify_signature

if TYPE_CHECKING:
    from hookdeploy.config import ServerConfig
    from hookdeploy.webhook.deployer import Deployer

logger = logging.getLogger(__name__)


class WebhookServer:
    """HTTP server that turns authenticated pushes to main into deploys.

    Routes:
    - ``POST /webhook`` -- Signed push notifications; other methods get 405.
    - ``*    /health``  -- Liveness check for uptime monitors, any method.
    """

    def __init__(self, config: ServerConfig, deployer: Deployer) -> None:
        self._config = config
        self._secret = config.webhook_secret.get_secret_value()
        self._deployer = deployer
        self._runner: web.AppRunner | None = None

    def build_app(self) -> web.Application:
        """Create the aiohttp application with both routes registered."""
        app = web.Application(client_max_size=self._config.max_body_bytes)
        app.router.add_route("*", "/webhook", self._handle_webhook)
        app.router.add_route("*", "/health", self._handle_health)
        return app

    async def start(self) -> None:
        """Bind the listener.  Raises `OSError` when the address is unavailable."""
        runner = web.AppRunner(self.build_app(), access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self._config.host, self._config.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner
        logger.info(
            "Webhook server listening on %s:%d",
            self._config.host,
            self._config.port,
        )

    async def stop(self) -> None:
        """Stop accepting requests, then let running deploys finish."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        await self._deployer.wait_idle()
        logger.info("Webhook server stopped")

    # -- Handlers --

    async def _handle_health(self, _request: web.Request) -> web.Response:
        return web.Response(text="OK")

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        delivery_id = request.headers.get(DELIVERY_HEADER, "")
        set_log_context(operation="wh", delivery_id=delivery_id)

        if request.method != "POST":
            logger.info("Webhook rejected: method=%s", request.method)
            return web.Response(status=405, text="Method not allowed")

        try:
            body = await request.read()
        except (web.HTTPRequestEntityTooLarge, ClientPayloadError, OSError) as exc:
            logger.warning("Webhook rejected: failed to read body (%s)", exc)
            return web.Response(status=400, text="Failed to read body")

        hook = WebhookRequest(
            body=body,
            signature=request.headers.get(SIGNATURE_HEADER, ""),
            event=request.headers.get(EVENT_HEADER, ""),
            delivery_id=delivery_id,
        )
        return self.dispatch(hook)

    def dispatch(self, hook: WebhookRequest) -> web.Response:
        """Authenticate and filter *hook*, starting a deploy when it qualifies."""
        if not verify_signature(hook.body, hook.signature, self._secret):
            logger.warning("Invalid signature")
            return web.Response(status=401, text="Invalid signature")

        if not is_push_event(hook.event):
            logger.info("Ignored event=%s", hook.event or "<missing>")
            return web.Response(text="Ignored: not a push event")

        ref = pushed_ref(hook.body)
        if ref != MAIN_REF:
            logger.info("Ignored push to ref=%s", ref or "<missing>")
            return web.Response(text="Ignored: not main branch")

        logger.info("Received push to main, deploying...")
        self._deployer.trigger()
        return web.Response(text="Deploying...")
