"""Fraud detection request interceptor.

Runs before route handlers for every authenticated, non-admin request:

1. resolve the request's :class:`ActionClass` from its route name (or an
   explicit per-route override); low-risk classes pass straight through,
2. collect signals and evaluate the class's rules,
3. act on the decision: ``block`` and ``challenge`` short-circuit the
   handler, ``flag`` lets it run and attaches a warning, ``allow`` is silent,
4. sample requests that reached their handler into the audit log.

The interceptor is advisory and fails open: any error while evaluating is
logged and the request proceeds as if nothing fired.
"""

import json
import random
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Protocol
from urllib.parse import parse_qsl

from fastapi import Request
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, Response
from starlette.routing import Match
from starlette.types import ASGIApp

from gig_api.api.middleware import (
    FLASH_FRAUD_ALERT,
    FLASH_WARNING,
    FRAUD_WARNING_HEADER,
    get_client_ip,
    redirect_back,
    set_flash,
    wants_json,
)
from gig_api.core.config import Settings
from gig_api.core.database import get_session_factory, session_scope
from gig_api.core.dependencies import get_user_by_username
from gig_api.core.security import ACCESS_TOKEN_TYPE, bearer_token, decode_token
from gig_api.lib.risk import (
    ActionClass,
    Decision,
    RequestContext,
    RiskAssessment,
    RuleConfig,
    collect_signals,
    decide,
    evaluate,
    is_low_risk,
    resolve_action_class,
)
from gig_api.models.user import User
from gig_api.services import audit_service, fraud_alert_service
from gig_api.services.signal_service import SqlSignalSource

BLOCK_ERROR = "Suspicious activity detected"
BLOCK_MESSAGE = "This action has been blocked for security reasons. Please contact support if you believe this is an error."
CHALLENGE_ERROR = "Additional verification required"
CHALLENGE_MESSAGE = "Please verify your identity to continue."
FLAG_WARNING = "Unusual activity detected"
FLAG_MESSAGE = "This action has been flagged for review."


class SampleDecider(Protocol):
    """Decides whether a request is written to the audit log as behaviour telemetry."""

    def __call__(self, rate: float) -> bool: ...


class RandomSampler:
    """Bernoulli sampler over a seedable RNG."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def __call__(self, rate: float) -> bool:
        if rate <= 0:
            return False
        if rate >= 1:
            return True
        return self._rng.random() < rate


def _reject_constant(name: str) -> Any:
    msg = f"{name} is not a JSON number"
    raise ValueError(msg)


def parse_body_fields(body: bytes, content_type: str) -> dict[str, Any]:
    """Best-effort parse of a JSON or form-encoded body into a flat mapping."""
    if not body:
        return {}
    content_type = content_type.lower()
    if "application/json" in content_type:
        try:
            parsed = json.loads(body, parse_constant=_reject_constant)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    if "application/x-www-form-urlencoded" in content_type:
        return dict(parse_qsl(body.decode("utf-8", errors="replace"), keep_blank_values=True))
    return {}


def _match_route_name(routes: Any, scope: dict[str, Any]) -> str | None:
    for route in routes:
        match, child_scope = route.matches(scope)
        if match != Match.FULL:
            continue
        if hasattr(route, "endpoint"):
            return getattr(route, "name", None)
        # Mounts and included routers: descend with the scope they hand down.
        nested = getattr(route, "routes", None)
        if nested:
            name = _match_route_name(nested, {**scope, **child_scope})
            if name is not None:
                return name
    return None


def route_name_for(request: Request) -> str | None:
    """Name of the endpoint that will handle ``request``, if any.

    Included routers and mounts may stay nested inside the application
    router, so the search descends into them.
    """
    return _match_route_name(request.app.router.routes, dict(request.scope))


class FraudDetectionMiddleware(BaseHTTPMiddleware):
    """Assess authenticated non-admin requests before their handler runs."""

    def __init__(
        self,
        app: ASGIApp,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        sampler: SampleDecider | None = None,
        action_overrides: Mapping[str, ActionClass] | None = None,
    ) -> None:
        super().__init__(app)
        self.settings = settings
        self._session_factory = session_factory
        self.sampler = sampler or RandomSampler()
        self.action_overrides = dict(action_overrides or {})
        self.rule_config = RuleConfig(
            high_value_amount=Decimal(str(settings.fraud_high_value_amount)),
            escalation_enabled=settings.fraud_escalation_enabled,
            verified_dampening_enabled=settings.fraud_verified_dampening_enabled,
        )

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        # Resolved lazily: the global engine is created in the app lifespan.
        return self._session_factory or get_session_factory()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Run the fraud pipeline around the downstream handler.

        Args:
            request: The incoming request.
            call_next: The next middleware/handler.

        Returns:
            The handler's response, or a block/challenge response.
        """
        client_ip = get_client_ip(request, self.settings.trusted_proxy_header_list)
        request.state.client_ip = client_ip

        if not self.settings.fraud_detection_enabled:
            return await call_next(request)

        user = await self._authenticate(request)
        if user is None or user.is_admin:
            return await call_next(request)

        route_name = route_name_for(request)
        action_class = resolve_action_class(route_name, request.method, self.action_overrides.get(route_name or ""))
        request.state.action_class = action_class

        body = await request.body()
        ctx = RequestContext(
            user_id=user.id,
            role=user.role,
            email=user.email,
            is_admin=user.is_admin,
            id_verified=user.id_verified,
            route_name=route_name,
            method=request.method,
            path=request.url.path,
            fields=parse_body_fields(body, request.headers.get("content-type", "")),
            ip_address=client_ip,
            user_agent=request.headers.get("user-agent"),
            session_id=request.cookies.get("session_id") or request.headers.get("x-session-id"),
            referer=request.headers.get("referer"),
            request_size=len(body),
        )

        if is_low_risk(action_class):
            response = await call_next(request)
            await self._sample(ctx, action_class)
            return response

        outcome = await self._assess(ctx, action_class)
        assessment, signals = outcome if outcome is not None else (None, None)
        decision = decide(assessment) if assessment is not None else Decision.ALLOW
        request.state.fraud_decision = decision

        if decision is not Decision.ALLOW:
            await self._record_alert(ctx, assessment, decision, action_class, signals)  # type: ignore[arg-type]

        if decision is Decision.BLOCK:
            return self._reject(request, 403, BLOCK_ERROR, BLOCK_MESSAGE)
        if decision is Decision.CHALLENGE:
            return self._reject(request, 422, CHALLENGE_ERROR, CHALLENGE_MESSAGE, verification_required=True)

        response = await call_next(request)
        if decision is Decision.FLAG:
            self._attach_warning(request, response)
        await self._sample(ctx, action_class, assessment)
        return response

    async def _authenticate(self, request: Request) -> User | None:
        token = bearer_token(request.headers.get("authorization"))
        if token is None:
            return None
        try:
            payload = decode_token(token, self.settings.jwt_secret_key, self.settings.jwt_algorithm)
        except Exception:
            # The route's own auth dependency reports invalid tokens.
            return None
        username = payload.get("sub")
        if not username or payload.get("type") != ACCESS_TOKEN_TYPE:
            return None
        try:
            async with session_scope(self.session_factory) as session:
                user = await get_user_by_username(session, username)
        except Exception as e:
            logger.error(f"Fraud check skipped, could not load user '{username}': {e}")
            return None
        if user is None or not user.is_active:
            return None
        return user

    async def _assess(
        self, ctx: RequestContext, action_class: ActionClass
    ) -> tuple[RiskAssessment, dict[str, Any]] | None:
        try:
            async with session_scope(self.session_factory) as session:
                bundle = await collect_signals(
                    SqlSignalSource(session),
                    ctx,
                    action_class,
                    include_escalation=self.rule_config.escalation_enabled,
                )
            assessment = evaluate(bundle, self.rule_config)
        except Exception as e:
            logger.opt(exception=self.settings.debug).error(
                f"Fraud evaluation failed for user {ctx.user_id} on {ctx.route_name}, allowing request: {e}"
            )
            return None
        return assessment, bundle.to_dict()

    async def _record_alert(
        self,
        ctx: RequestContext,
        assessment: RiskAssessment,
        decision: Decision,
        action_class: ActionClass,
        signals: dict[str, Any] | None,
    ) -> None:
        try:
            async with session_scope(self.session_factory) as session:
                await fraud_alert_service.record_alert(
                    session,
                    ctx,
                    assessment,
                    decision,
                    action_class=action_class,
                    amount=ctx.amount("amount", "bid_amount"),
                    signals=signals,
                )
        except Exception as e:
            logger.error(f"Could not persist fraud alert for user {ctx.user_id} ({decision.value}): {e}")

    async def _sample(
        self,
        ctx: RequestContext,
        action_class: ActionClass,
        assessment: RiskAssessment | None = None,
    ) -> None:
        if not self.sampler(self.settings.fraud_behavior_sample_rate):
            return
        try:
            async with session_scope(self.session_factory) as session:
                await audit_service.record_behavior_sample(
                    session,
                    ctx,
                    action_class,
                    risk_score=assessment.risk_score if assessment is not None else None,
                )
        except Exception as e:
            logger.warning(f"Behavior sampling failed for user {ctx.user_id}: {e}")

    def _reject(
        self,
        request: Request,
        status_code: int,
        error: str,
        message: str,
        *,
        verification_required: bool = False,
    ) -> Response:
        if not wants_json(request, self.settings.api_v1_prefix):
            return redirect_back(request, FLASH_FRAUD_ALERT, message)
        content: dict[str, Any] = {"error": error, "message": message}
        if verification_required:
            content["verification_required"] = True
        return JSONResponse(status_code=status_code, content=content)

    def _attach_warning(self, request: Request, response: Response) -> None:
        if wants_json(request, self.settings.api_v1_prefix):
            response.headers[FRAUD_WARNING_HEADER] = json.dumps({"warning": FLAG_WARNING, "message": FLAG_MESSAGE})
        else:
            set_flash(response, FLASH_WARNING, FLAG_MESSAGE)
