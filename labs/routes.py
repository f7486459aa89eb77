import logging
from dataclasses import asdict

from flask import current_app, request
from flask_login import current_user, login_required

from academy.errors import InvalidConfiguration, InvalidRequest
from academy.progress import POINTS

from . import ciphers
from .cracker import (
    AttackMode,
    CrackSession,
    CrackStatus,
    build_charset,
    generate_target,
    password_strength,
)
from .data import CRACK_LEVELS

logger = logging.getLogger(__name__)


def _json_body():
    return request.get_json(silent=True) or {}


def _int_field(data, name, default):
    value = data.get(name, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRequest(f"{name} must be a whole number.") from None


def register_lab_routes(app, profiles, registry, scheduler):
    """Attach the crypto and password-cracking lab endpoints to the app."""

    # ---- Crypto challenge
    @app.route("/api/labs/crypto/challenge")
    @login_required
    def crypto_challenge():
        """Load a random challenge, optionally from one cipher's pool."""
        game = registry.game_for(current_user.id)
        game.load_random(request.args.get("pool") or None)
        return {"success": True, "data": game.snapshot()}

    @app.route("/api/labs/crypto/submit", methods=["POST"])
    @login_required
    def crypto_submit():
        answer = _json_body().get("answer")
        if not isinstance(answer, str):
            raise InvalidRequest("answer is required.")
        game = registry.game_for(current_user.id)
        result = game.submit(answer)
        return {
            "success": True,
            "data": {
                "correct": result.correct,
                "points": result.points,
                "stats": asdict(result.stats),
                "message": (
                    f"Correct! +{result.points} points!" if result.correct else "Not quite, try again!"
                ),
            },
        }

    @app.route("/api/labs/crypto/hint", methods=["POST"])
    @login_required
    def crypto_hint():
        game = registry.game_for(current_user.id)
        hint = game.show_hint()
        return {"success": True, "data": {"hint": hint, "stats": asdict(game.stats)}}

    @app.route("/api/labs/crypto/skip", methods=["POST"])
    @login_required
    def crypto_skip():
        game = registry.game_for(current_user.id)
        game.skip()
        return {"success": True, "data": game.snapshot()}

    @app.route("/api/labs/crypto/stats")
    @login_required
    def crypto_stats():
        return {"success": True, "data": registry.game_for(current_user.id).snapshot()}

    def _cipher_call(encrypting):
        data = _json_body()
        text = data.get("text")
        if not text:
            raise InvalidRequest("Enter some text first.")
        result = ciphers.transform(data.get("cipher", "caesar"), text, data.get("key"), encrypting)
        return {"success": True, "data": {"result": result}}

    @app.route("/api/labs/crypto/encrypt", methods=["POST"])
    @login_required
    def crypto_encrypt():
        return _cipher_call(True)

    @app.route("/api/labs/crypto/decrypt", methods=["POST"])
    @login_required
    def crypto_decrypt():
        return _cipher_call(False)

    @app.route("/api/labs/crypto/frequency", methods=["POST"])
    @login_required
    def crypto_frequency():
        text = _json_body().get("text") or ""
        freq = ciphers.frequency_analyze(text)
        return {"success": True, "data": {"frequency": {k: round(v, 2) for k, v in freq.items()}}}

    # ---- Password cracking
    def _finalize(session_id, session):
        """Award points for a crack and drop sessions that are done."""
        data = session.report()
        data["id"] = session_id
        data["pointsEarned"] = 0
        if session.finished:
            registry.drop_crack(current_user.id, session_id)
            if session.status is CrackStatus.CRACKED:
                _profile, result = profiles.record(current_user.id, POINTS["password_lab"], "password_lab")
                data["pointsEarned"] = result.points_earned
                data["newBadges"] = result.new_badges
        return data

    @app.route("/api/labs/crack/sessions", methods=["POST"])
    @login_required
    def crack_start():
        """Generate a target and open a crack session for it."""
        data = _json_body()
        level = data.get("level")
        if level is not None:
            preset = CRACK_LEVELS.get(level)
            if preset is None:
                raise InvalidRequest(f"Unknown level: {level}")
            data = {**preset, **{k: v for k, v in data.items() if k != "level"}}

        charset = build_charset(
            lowercase=bool(data.get("lowercase", True)),
            uppercase=bool(data.get("uppercase", False)),
            digits=bool(data.get("digits", True)),
            symbols=bool(data.get("symbols", False)),
        )
        length = _int_field(data, "length", 4)
        max_length = current_app.config["CRACK_MAX_LENGTH"]
        if not 1 <= length <= max_length:
            raise InvalidConfiguration(f"Password length must be between 1 and {max_length}.")
        target = generate_target(charset, length)
        session = CrackSession(target, data.get("mode", AttackMode.DICTIONARY.value), charset)
        session_id = registry.add_crack(current_user.id, session)
        if data.get("autoRun"):
            session.start(scheduler, current_app.config["CRACK_TICK_INTERVAL"])
        score, label = password_strength(target)
        logger.info("Learner %s opened %s crack session %s", current_user.id, session.mode.value, session_id)
        return {
            "success": True,
            "data": {
                "id": session_id,
                "strength": {"score": score, "label": label},
                **session.report(),
            },
        }, 201

    @app.route("/api/labs/crack/sessions/<session_id>/step", methods=["POST"])
    @login_required
    def crack_step(session_id):
        session = registry.crack(current_user.id, session_id)
        limit = current_app.config["CRACK_MAX_STEPS_PER_REQUEST"]
        steps = _int_field(_json_body(), "steps", 1)
        if steps < 1:
            raise InvalidRequest("steps must be at least 1.")
        session.run(max_steps=min(steps, limit))
        return {"success": True, "data": _finalize(session_id, session)}

    @app.route("/api/labs/crack/sessions/<session_id>")
    @login_required
    def crack_status(session_id):
        session = registry.crack(current_user.id, session_id)
        return {"success": True, "data": _finalize(session_id, session)}

    @app.route("/api/labs/crack/sessions/<session_id>", methods=["DELETE"])
    @login_required
    def crack_stop(session_id):
        session = registry.drop_crack(current_user.id, session_id)
        return {"success": True, "data": session.report()}

    @app.route("/api/labs/crack/strength", methods=["POST"])
    @login_required
    def crack_strength():
        score, label = password_strength(_json_body().get("password") or "")
        return {"success": True, "data": {"score": score, "label": label}}
