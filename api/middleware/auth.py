# SPDX-License-Identifier: Apache-2.0

"""
Identity middleware.

The gateway verifies callers and forwards the result in the ``X-Actor-Id``
and ``X-Actor-Role`` headers. This module trusts those headers and builds
the actor context for request processing.
"""

from functools import wraps
from flask import request, g
from typing import Optional, Callable
from pydantic import ValidationError
from opentelemetry import trace
import logging

from domain.errors import AuthenticationException, ForbiddenException
from models.entities import ActorContext

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"


def extract_actor_from_request() -> Optional[ActorContext]:
    """
    Build the actor context from the identity headers.

    Returns:
        ActorContext, or None when no identity headers are present

    Raises:
        AuthenticationException: If the headers are present but unreadable
    """
    actor_id = request.headers.get(ACTOR_ID_HEADER, "").strip()
    role = request.headers.get(ACTOR_ROLE_HEADER, "").strip().lower()

    if not actor_id and not role:
        return None

    try:
        return ActorContext(actor_id=actor_id, role=role)
    except ValidationError:
        raise AuthenticationException("Invalid actor identity headers")


def require_actor(*roles: str) -> Callable:
    """
    Decorator requiring a verified actor, optionally restricted to roles.

    The actor is stored in ``g.actor``.
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            with tracer.start_as_current_span("auth.middleware.resolve_actor") as span:
                actor = extract_actor_from_request()
                if actor is None:
                    span.set_attribute("auth.result", "missing_identity")
                    logger.warning("Authentication failed: missing identity headers")
                    raise AuthenticationException("Missing actor identity headers")

                if roles and actor.role not in roles:
                    span.set_attribute("auth.result", "forbidden_role")
                    raise ForbiddenException(f"Role {actor.role} cannot perform this operation")

                span.set_attributes({
                    "auth.result": "success",
                    "actor.id": actor.actor_id,
                    "actor.role": actor.role
                })
                g.actor = actor

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def optional_actor(f: Callable) -> Callable:
    """Decorator setting ``g.actor`` when identity headers are present, None otherwise."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.actor = extract_actor_from_request()
        return f(*args, **kwargs)
    return decorated_function
