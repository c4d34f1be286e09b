from flask import Flask
from flask_cors import CORS
from flask_restful import Api, Resource
from flask_migrate import Migrate
from models import db
from models.base import enable_sqlite_transactions
from config import Config
from repositories import UserRepository, SwipeLedger, LikeStore, MatchStore
from utils.cache import CacheManager, create_redis_client
from utils.daily_likes import DailyLikeCounter
from utils.locks import DistributedLockManager
from utils.matching import MatchingEngine
from utils.notifications import NotificationDispatcher, EmailNotificationDispatcher
from utils.rate_limit import RateLimiter
import logging

migrate = Migrate()


class HealthCheck(Resource):
    def get(self):
        return {"status": "ok"}


def build_matching_engine(config, redis_client=None, notifier=None) -> MatchingEngine:
    """Wire the matching engine and its stores from a Flask config mapping"""
    cache = CacheManager(redis_client)

    users = UserRepository(cache)
    likes = LikeStore(cache, cache_ttl=config['LIKE_CACHE_TTL_SECONDS'])

    if notifier is None:
        if config['NOTIFICATIONS_BACKEND'] == 'email':
            notifier = EmailNotificationDispatcher(
                users,
                api_key=config['RESEND_API_KEY'],
                from_email=config['RESEND_FROM_EMAIL']
            )
        else:
            notifier = NotificationDispatcher()

    return MatchingEngine(
        cache=cache,
        locks=DistributedLockManager(
            cache,
            hold_timeout=config['LOCK_HOLD_TIMEOUT_SECONDS'],
            wait_timeout=config['LOCK_WAIT_TIMEOUT_SECONDS'],
            poll_interval=config['LOCK_POLL_INTERVAL_SECONDS'],
        ),
        rate_limiter=RateLimiter(
            cache,
            requests_per_window=config['RATE_LIMIT_REQUESTS_PER_WINDOW'],
            window_seconds=config['RATE_LIMIT_WINDOW_SECONDS'],
            ban_threshold=config['RATE_LIMIT_BAN_THRESHOLD'],
            backend=config['RATE_LIMIT_BACKEND'],
        ),
        daily_likes=DailyLikeCounter(
            cache,
            likes,
            max_daily_likes=config['MAX_DAILY_LIKES'],
            utc_offset_hours=config['DAILY_RESET_UTC_OFFSET_HOURS'],
        ),
        users=users,
        swipes=SwipeLedger(cache, cache_ttl=config['SWIPE_CACHE_TTL_SECONDS']),
        likes=likes,
        matches=MatchStore(cache),
        notifier=notifier,
        stats_ttl=config['STATS_CACHE_TTL_SECONDS'],
    )


def create_app(config_overrides=None, redis_client=None, notifier=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s %(message)s'
    )

    CORS(app)
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        if db.engine.dialect.name == 'sqlite':
            enable_sqlite_transactions(db.engine)

    if redis_client is None:
        redis_client = create_redis_client(app.config['REDIS_URL'])

    app.extensions['matching_engine'] = build_matching_engine(app.config, redis_client, notifier)

    api = Api(app)

    from resources.swipes import SwipeResource
    from resources.match import (
        UserMatchesResource,
        MatchStatisticsResource,
        UnmatchResource,
        ReportMatchResource,
    )
    from resources.likes import ReceivedLikesResource, SentLikesResource

    api.add_resource(HealthCheck, '/health')

    # Swipe routes
    api.add_resource(SwipeResource, '/swipes')

    # Match routes
    api.add_resource(UserMatchesResource, '/matches')
    api.add_resource(MatchStatisticsResource, '/matches/stats')
    api.add_resource(UnmatchResource, '/matches/<string:match_id>/unmatch')
    api.add_resource(ReportMatchResource, '/matches/<string:match_id>/report')

    # Like routes
    api.add_resource(ReceivedLikesResource, '/likes/received')
    api.add_resource(SentLikesResource, '/likes/sent')

    return app


if __name__ == '__main__':
    create_app().run(debug=True)
