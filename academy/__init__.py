import atexit
import logging
import os

from flask import Flask, jsonify, request
from flask_login import LoginManager
from flask_wtf import CSRFProtect
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from config import Config
from .errors import AcademyError
from .models import db, User
from .scheduling import Scheduler
from .store import LogNotifier, ProfileStore

login_manager = LoginManager()
csrf = CSRFProtect()


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(app.config["LOG_LEVEL"])
    logging.getLogger("academy").setLevel(app.config["LOG_LEVEL"])

    # ensure instance folder exists
    os.makedirs(os.path.join(app.instance_path), exist_ok=True)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    # initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    csrf.init_app(app)

    from labs.challenge import ChallengeGame, build_pools
    from labs.routes import register_lab_routes
    from labs.sessions import LabRegistry
    from tutor.client import ConversationStore, TutorClient
    from tutor.routes import register_tutor_routes

    profiles = ProfileStore(app.config["STREAK_TIMEZONE"])
    scheduler = app.config.get("SCHEDULER") or Scheduler()
    notifier = LogNotifier()
    pools = build_pools()

    def game_factory(learner_id):
        def on_solved(challenge):
            profiles.record(learner_id, challenge.points, f"crypto_{challenge.algorithm}")

        return ChallengeGame(
            pools,
            scheduler,
            advance_delay=app.config["CHALLENGE_ADVANCE_DELAY"],
            on_solved=on_solved,
            notifier=notifier,
        )

    labs = LabRegistry(game_factory)
    conversations = ConversationStore(app.config["AI_HISTORY_LIMIT"])
    tutor = app.config.get("TUTOR_CLIENT") or TutorClient(
        app.config["AI_API_URL"],
        app.config["AI_API_KEY"],
        model=app.config["AI_MODEL"],
        timeout=app.config["AI_TIMEOUT"],
    )
    app.extensions["academy"] = {
        "profiles": profiles,
        "scheduler": scheduler,
        "labs": labs,
        "conversations": conversations,
        "tutor": tutor,
    }

    from .auth.routes import auth_bp
    from .comments.routes import comments_bp
    from .main.routes import main_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(main_bp)
    app.register_blueprint(comments_bp)
    register_lab_routes(app, profiles, labs, scheduler)
    register_tutor_routes(app, profiles, conversations, tutor)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return {"success": False, "error": "Please log in first.", "retryable": False}, 401

    @app.errorhandler(AcademyError)
    def handle_academy_error(error):
        if error.status_code >= 500:
            app.logger.warning("%s on %s: %s", type(error).__name__, request.path, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"success": False, "error": error.description, "retryable": False}), error.code

    atexit.register(scheduler.shutdown)

    with app.app_context():
        db.create_all()

    return app
