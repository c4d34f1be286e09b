import logging
from middleware.auth import token_required
from flask_restful import Resource
from flask import request, current_app
from utils.errors import MatchingError
from utils.response import success_response, error_response, matching_error_response

logger = logging.getLogger(__name__)


class SwipeResource(Resource):
    """Resource for rating a candidate (like, dislike or super like)"""

    @token_required
    def post(self):
        """
        Record a swipe on another user.
        If both users liked each other the response carries the match id.
        """
        try:
            user_id = request.user_id
            data = request.get_json(silent=True)

            if not data:
                return error_response("No data provided", 400)

            target_user_id = data.get('target_user_id')
            decision = data.get('decision')
            message = data.get('message')

            if not target_user_id or not decision:
                return error_response("target_user_id and decision are required", 400)

            if message is not None and (not isinstance(message, str) or len(message) > 500):
                return error_response("message must be text of at most 500 characters", 400)

            engine = current_app.extensions['matching_engine']
            result = engine.submit_swipe(user_id, str(target_user_id), decision, message)

            if result.matched:
                return success_response(result.to_dict(), "It's a match!", 201)
            return success_response(result.to_dict(), "Swipe recorded", 201)

        except MatchingError as e:
            logger.info(f"Swipe rejected for user {request.user_id}: {e.code}")
            return matching_error_response(e)
        except Exception as e:
            logger.exception(f"Error recording swipe: {str(e)}")
            return error_response("Failed to record swipe", 500)
