# SPDX-License-Identifier: Apache-2.0

"""
Leaderboard and community statistics endpoints.

Every view is computed from the contribution ledger at request time.
"""

from flask import request, jsonify, current_app, g
from flask_openapi3 import APIBlueprint, Tag
import logging

from domain.errors import ValidationException
from middleware.auth import optional_actor
from models.requests import UserPath
from utils.request import RequestParser

logger = logging.getLogger(__name__)

leaderboard_tag = Tag(name="Leaderboard", description="Contribution rankings and statistics")
leaderboard_bp = APIBlueprint(
    'leaderboard',
    __name__,
    url_prefix='/api/leaderboard',
    abp_tags=[leaderboard_tag]
)


def _requester_id():
    actor = g.get('actor')
    return actor.actor_id if actor is not None else None


def _window():
    return RequestParser.get_int_arg("limit", 10), RequestParser.get_int_arg("offset", 0)


@leaderboard_bp.get('/monthly')
@optional_actor
def monthly_leaderboard():
    """
    Monthly leaderboard.

    Query: year, month (default current), category, limit, offset.
    """
    service = current_app.services.leaderboard
    current = service.current_period(monthly=True)
    period = RequestParser.get_period(current.year, current.month)
    limit, offset = _window()

    page = service.get_leaderboard(
        period,
        category=request.args.get('category') or None,
        limit=limit,
        offset=offset,
        requester_id=_requester_id()
    )
    return jsonify(page.to_dict()), 200


@leaderboard_bp.get('/yearly')
@optional_actor
def yearly_leaderboard():
    """Yearly leaderboard with a monthly breakdown per row."""
    service = current_app.services.leaderboard
    current = service.current_period(monthly=False)
    period = RequestParser.get_period(current.year, None)
    limit, offset = _window()

    page = service.get_leaderboard(
        period,
        category=request.args.get('category') or None,
        limit=limit,
        offset=offset,
        requester_id=_requester_id()
    )
    return jsonify(page.to_dict()), 200


@leaderboard_bp.get('/category')
def category_leaderboard():
    """Monthly leaderboard restricted to one category."""
    category = request.args.get('category')
    if not category:
        raise ValidationException(
            "Query parameter category is required",
            [{"field": "category", "message": "required"}]
        )

    service = current_app.services.leaderboard
    current = service.current_period(monthly=True)
    period = RequestParser.get_period(current.year, current.month)
    limit, offset = _window()

    return jsonify(service.get_category_leaderboard(category, period, limit=limit, offset=offset)), 200


@leaderboard_bp.get('/users/<string:user_id>')
def user_history(path: UserPath):
    """A user's contributions for one year, by month and by category."""
    service = current_app.services.leaderboard
    year = RequestParser.get_int_arg("year", service.current_period().year)
    return jsonify(service.get_user_contribution_history(path.user_id, year)), 200


@leaderboard_bp.get('/users/<string:user_id>/score')
def user_score(path: UserPath):
    """A user's totals for a month, or a year when ``period=yearly``."""
    service = current_app.services.leaderboard
    monthly = request.args.get('period', 'monthly') != 'yearly'
    current = service.current_period(monthly=monthly)
    period = RequestParser.get_period(current.year, current.month)
    return jsonify(service.get_user_score(path.user_id, period)), 200


@leaderboard_bp.get('/users/<string:user_id>/achievements')
def user_achievements(path: UserPath):
    return jsonify(current_app.services.leaderboard.get_achievements(path.user_id)), 200


@leaderboard_bp.get('/stats')
def stats():
    """Participation overview, month over month growth and top categories."""
    service = current_app.services.leaderboard
    year = RequestParser.get_int_arg("year")
    month = RequestParser.get_int_arg("month")
    if month is not None and not 1 <= month <= 12:
        raise ValidationException(
            "month must be between 1 and 12",
            [{"field": "month", "message": "must be between 1 and 12"}]
        )
    return jsonify(service.get_stats(year, month)), 200


@leaderboard_bp.get('/impact')
def community_impact():
    """Issue outcomes over the last ``timeframe`` days."""
    timeframe = RequestParser.get_int_arg("timeframe", 30)
    return jsonify(current_app.services.analytics.community_impact(timeframe)), 200


@leaderboard_bp.get('/resolution-times')
def resolution_times():
    return jsonify(current_app.services.analytics.resolution_time_summary()), 200
