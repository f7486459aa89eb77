import re
from datetime import datetime, timezone

from flask import Blueprint, request
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf
from sqlalchemy import or_
from werkzeug.security import check_password_hash, generate_password_hash

from ..errors import InvalidRequest
from ..models import User, db
from ..progress import BADGES_BY_ID, check_badges, update_streak
from ..utils import lab_registry, profile_store

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD = 6


def user_payload(user, profile):
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "isAdmin": bool(user.is_admin),
        "preferences": {"language": user.language, "theme": user.theme},
        "progress": {
            "totalPoints": profile.points,
            "level": profile.level,
            "streakDays": profile.streak_days,
            "badges": [
                {"badgeId": b.badge_id, "name": BADGES_BY_ID[b.badge_id].name, "earnedAt": b.earned_at.isoformat()}
                for b in profile.badges
                if b.badge_id in BADGES_BY_ID
            ],
            "completedCourses": len(profile.completed_courses),
            "completedExercises": len(profile.completed_exercises),
        },
        "stats": {
            "loginCount": user.login_count,
            "totalStudyTime": user.study_minutes,
            "commentsCount": user.comments_count,
            "likesReceived": user.likes_received,
        },
    }


@auth_bp.route("/csrf")
def csrf_token():
    return {"success": True, "data": {"csrfToken": generate_csrf()}}


@auth_bp.route("/register", methods=["POST"])
def register():
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not username or not email or not password:
        raise InvalidRequest("Username, email and password are required.")
    if not 3 <= len(username) <= 30:
        raise InvalidRequest("Username must be 3 to 30 characters.")
    if not EMAIL_RE.match(email):
        raise InvalidRequest("Please enter a valid email address.")
    if len(password) < MIN_PASSWORD:
        raise InvalidRequest(f"Password must be at least {MIN_PASSWORD} characters.")
    if User.query.filter(or_(User.username == username, User.email == email)).first():
        raise InvalidRequest("Username or email already taken.")

    user = User(
        username=username,
        email=email,
        password_hash=generate_password_hash(password),
        language=data.get("language") or "en",
    )
    db.session.add(user)
    db.session.commit()
    login_user(user, remember=True)
    profile = profile_store().load(user.id)
    return {"success": True, "message": "Account created.", "data": {"user": user_payload(user, profile)}}, 201


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    identity = (data.get("email") or data.get("username") or "").strip()
    password = data.get("password") or ""
    if not identity or not password:
        raise InvalidRequest("Email and password are required.")

    user = User.query.filter(or_(User.email == identity.lower(), User.username == identity)).first()
    if not user or not check_password_hash(user.password_hash, password):
        return {"success": False, "error": "Invalid credentials.", "retryable": False}, 401

    store = profile_store()
    with store.editing(user.id) as profile:
        update_streak(profile, datetime.now(timezone.utc), store.tz)
        check_badges(profile)
    user.login_count = (user.login_count or 0) + 1
    db.session.commit()
    login_user(user, remember=True)
    return {"success": True, "message": "Logged in.", "data": {"user": user_payload(user, profile)}}


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    lab_registry().discard(current_user.id)
    logout_user()
    return {"success": True, "message": "Logged out."}


@auth_bp.route("/me")
@login_required
def me():
    profile = profile_store().load(current_user.id)
    return {"success": True, "data": {"user": user_payload(current_user, profile)}}


@auth_bp.route("/profile", methods=["PUT"])
@login_required
def update_profile():
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    if username and username != current_user.username:
        if not 3 <= len(username) <= 30:
            raise InvalidRequest("Username must be 3 to 30 characters.")
        if User.query.filter_by(username=username).first():
            raise InvalidRequest("Username already taken.")
        current_user.username = username

    prefs = data.get("preferences") or {}
    if prefs.get("language") in {"en", "zh"}:
        current_user.language = prefs["language"]
    if prefs.get("theme") in {"dark", "light"}:
        current_user.theme = prefs["theme"]
    if "showOnLeaderboard" in data:
        current_user.show_on_leaderboard = bool(data["showOnLeaderboard"])
    db.session.commit()
    profile = profile_store().load(current_user.id)
    return {"success": True, "message": "Profile updated.", "data": {"user": user_payload(current_user, profile)}}


@auth_bp.route("/change-password", methods=["POST"])
@login_required
def change_password():
    data = request.get_json(silent=True) or {}
    current = data.get("currentPassword") or ""
    new = data.get("newPassword") or ""
    if not current or not new:
        raise InvalidRequest("Current and new password are required.")
    if len(new) < MIN_PASSWORD:
        raise InvalidRequest(f"Password must be at least {MIN_PASSWORD} characters.")
    if not check_password_hash(current_user.password_hash, current):
        raise InvalidRequest("Current password is incorrect.")
    current_user.password_hash = generate_password_hash(new)
    db.session.commit()
    return {"success": True, "message": "Password changed."}
