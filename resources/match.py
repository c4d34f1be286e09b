import logging
from middleware.auth import token_required
from flask_restful import Resource
from flask import request, current_app
from utils.errors import MatchingError
from utils.response import (
    success_response,
    error_response,
    matching_error_response,
    paginated_response,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def _engine():
    return current_app.extensions['matching_engine']


def _match_data(match, user_id):
    data = match.to_dict()
    data['id'] = str(match.id)
    data['other_user_id'] = match.other_user_id(user_id)
    return data


class UserMatchesResource(Resource):
    """Resource for getting the current user's active matches"""

    @token_required
    def get(self):
        """Get active matches, newest first"""
        try:
            user_id = request.user_id
            limit = min(request.args.get('limit', type=int, default=50), MAX_PAGE_SIZE)
            offset = max(request.args.get('offset', type=int, default=0), 0)

            if limit <= 0:
                return error_response("limit must be positive", 400)

            matches = _engine().get_active_matches(user_id, limit=limit, offset=offset)
            return paginated_response(
                [_match_data(m, user_id) for m in matches],
                limit,
                offset,
                "Matches retrieved successfully"
            )

        except Exception as e:
            logger.exception(f"Error fetching matches: {str(e)}")
            return error_response("Failed to fetch matches", 500)


class MatchStatisticsResource(Resource):
    """Resource for the current user's like and match counters"""

    @token_required
    def get(self):
        try:
            stats = _engine().get_statistics(request.user_id)
            return success_response(stats.to_dict(), "Statistics retrieved successfully")
        except Exception as e:
            logger.exception(f"Error fetching statistics: {str(e)}")
            return error_response("Failed to fetch statistics", 500)


class UnmatchResource(Resource):
    """Resource for ending a match"""

    @token_required
    def post(self, match_id):
        try:
            match = _engine().unmatch(request.user_id, match_id)
            return success_response(_match_data(match, request.user_id), "Unmatched successfully")
        except MatchingError as e:
            return matching_error_response(e)
        except Exception as e:
            logger.exception(f"Error unmatching {match_id}: {str(e)}")
            return error_response("Failed to unmatch", 500)


class ReportMatchResource(Resource):
    """Resource for reporting the other participant of a match"""

    @token_required
    def post(self, match_id):
        try:
            match = _engine().report_match(request.user_id, match_id)
            return success_response(_match_data(match, request.user_id), "Match reported")
        except MatchingError as e:
            return matching_error_response(e)
        except Exception as e:
            logger.exception(f"Error reporting match {match_id}: {str(e)}")
            return error_response("Failed to report match", 500)
