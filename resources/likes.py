import logging
from datetime import datetime, timezone
from middleware.auth import token_required
from flask_restful import Resource
from flask import request, current_app
from utils.response import success_response, error_response

logger = logging.getLogger(__name__)


def _parse_since(value):
    """Parse an ISO-8601 timestamp into the naive UTC form the store uses"""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class ReceivedLikesResource(Resource):
    """Resource for likes the current user received"""

    @token_required
    def get(self):
        try:
            since = request.args.get('since')
            try:
                since = _parse_since(since) if since else None
            except ValueError:
                return error_response("since must be an ISO-8601 timestamp", 400)

            likes = current_app.extensions['matching_engine'].get_received_likes(
                request.user_id, since=since
            )
            return success_response(
                {'likes': [like.to_dict() for like in likes], 'total': len(likes)},
                "Received likes retrieved successfully"
            )
        except Exception as e:
            logger.exception(f"Error fetching received likes: {str(e)}")
            return error_response("Failed to fetch likes", 500)


class SentLikesResource(Resource):
    """Resource for likes the current user sent"""

    @token_required
    def get(self):
        try:
            likes = current_app.extensions['matching_engine'].get_sent_likes(request.user_id)
            return success_response(
                {'likes': [like.to_dict() for like in likes], 'total': len(likes)},
                "Sent likes retrieved successfully"
            )
        except Exception as e:
            logger.exception(f"Error fetching sent likes: {str(e)}")
            return error_response("Failed to fetch likes", 500)
