# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request utilities for extracting and processing request data.
"""

from flask import request
from pydantic import BaseModel, ValidationError
from typing import Any, Dict, Optional, Type, TypeVar
import logging

from domain.errors import ValidationException
from domain.leaderboard import PeriodSelector

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class RequestParser:
    """Utility for parsing and extracting request data."""

    @staticmethod
    def get_json_body() -> Dict[str, Any]:
        """
        Return the JSON object sent with the request.

        Raises:
            ValidationException: If the body is missing or not a JSON object
        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationException(
                "Request body must be a JSON object",
                [{"field": "body", "message": "expected a JSON object"}]
            )
        return data

    @staticmethod
    def parse_body(model: Type[ModelT], message: str = "Request validation failed") -> ModelT:
        """Validate the JSON body into a pydantic model."""
        data = RequestParser.get_json_body()
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.warning(
                "Request body validation failed",
                extra={"extra_fields": {
                    "model": model.__name__,
                    "payload_keys": list(data.keys()),
                    "error_count": e.error_count()
                }}
            )
            raise ValidationException.from_pydantic(e, message)

    @staticmethod
    def parse_query(model: Type[ModelT], message: str = "Invalid query parameters") -> ModelT:
        """Validate the query string into a pydantic model."""
        try:
            return model.model_validate(request.args.to_dict())
        except ValidationError as e:
            raise ValidationException.from_pydantic(e, message)

    @staticmethod
    def get_int_arg(name: str, default: Optional[int] = None) -> Optional[int]:
        """
        Read an integer query parameter.

        Raises:
            ValidationException: If the value is not an integer
        """
        raw = request.args.get(name)
        if raw is None or raw == "":
            return default
        try:
            return int(raw)
        except (ValueError, TypeError):
            raise ValidationException(
                f"Query parameter {name} must be an integer",
                [{"field": name, "message": "must be an integer"}]
            )

    @staticmethod
    def get_period(default_year: int, default_month: Optional[int]) -> PeriodSelector:
        """
        Build a period selector from ``year`` and ``month`` query parameters.

        A yearly period is requested by passing ``default_month=None``.
        """
        year = RequestParser.get_int_arg("year", default_year)
        month = RequestParser.get_int_arg("month", default_month) if default_month is not None else None
        try:
            return PeriodSelector(year=year, month=month)
        except ValueError as e:
            raise ValidationException(str(e), [{"field": "month", "message": str(e)}])


def serialize(model: BaseModel) -> Dict[str, Any]:
    """JSON-ready camelCase representation of an entity."""
    return model.model_dump(by_alias=True, mode="json")
