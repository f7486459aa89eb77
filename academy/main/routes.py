import logging
from datetime import datetime, timedelta, timezone

from flask import Blueprint, request
from flask_login import current_user, login_required
from sqlalchemy import func

from ..courses import (
    CATEGORIES,
    COMING_SOON_PAGE,
    CONTENT_PAGES,
    COURSES,
    DIFFICULTIES,
    POPULAR,
    estimated_minutes,
    filter_courses,
    learning_paths,
    recommend,
)
from ..errors import InvalidRequest, NotFound
from ..models import Comment, CourseCompletion, User, db
from ..progress import (
    BADGES,
    adjust_points,
    apply_event,
    award_points,
    check_badges,
    level_progress,
    next_level_target,
    parse_event,
    update_streak,
)
from ..utils import admin_required, page_args, profile_store

main_bp = Blueprint("main", __name__, url_prefix="/api")
logger = logging.getLogger(__name__)

LEADERBOARD_FIELDS = {
    "points": User.points,
    "level": User.level,
    "streak": User.streak_days,
    "comments": User.comments_count,
}


def _with_progress(course, profile):
    done = profile.completed_courses.get(course["id"])
    current = profile.current_course
    is_current = bool(current and current.course_id == course["id"])
    return {
        **course,
        "isCompleted": done is not None,
        "isCurrent": is_current,
        "completedAt": done.completed_at.isoformat() if done else None,
        "score": done.score if done else None,
        "progress": current.progress if is_current else 0,
    }


# ---- Courses
@main_bp.route("/courses")
def courses_list():
    courses = filter_courses(
        request.args.get("category"), request.args.get("difficulty"), request.args.get("search")
    )
    if current_user.is_authenticated:
        profile = profile_store().load(current_user.id)
        courses = [_with_progress(c, profile) for c in courses]
    return {
        "success": True,
        "data": {"courses": courses, "categories": CATEGORIES, "difficulties": DIFFICULTIES},
    }


@main_bp.route("/courses/recommendations")
def courses_recommended():
    if not current_user.is_authenticated:
        return {"success": True, "data": {"courses": [COURSES[c] for c in POPULAR], "reason": "popular"}}
    profile = profile_store().load(current_user.id)
    return {
        "success": True,
        "data": {
            "courses": recommend(profile.level, set(profile.completed_courses)),
            "reason": f"level {profile.level}",
        },
    }


@main_bp.route("/courses/<course_id>")
def course_detail(course_id):
    course = COURSES.get(course_id)
    if course is None:
        raise NotFound("Course not found.")
    if not current_user.is_authenticated:
        return {"success": True, "data": {"course": course}}

    profile = profile_store().load(current_user.id)
    detail = _with_progress(course, profile)
    exercises = []
    for exercise_id in course["exercises"]:
        record = profile.completed_exercises.get(exercise_id)
        exercises.append({
            "id": exercise_id,
            "isCompleted": record is not None,
            "attempts": record.attempts if record else 0,
            "bestScore": record.best_score if record else 0,
            "completedAt": record.completed_at.isoformat() if record else None,
        })
    detail["exerciseProgress"] = exercises
    return {"success": True, "data": {"course": detail}}


@main_bp.route("/courses/<course_id>/stats")
def course_stats(course_id):
    course = COURSES.get(course_id)
    if course is None:
        raise NotFound("Course not found.")
    completed = CourseCompletion.query.filter_by(course_id=course_id).count()
    learning = User.query.filter_by(current_course_id=course_id).count()

    visible = Comment.query.filter_by(course_id=course_id, is_approved=True, is_deleted=False)
    total_comments = visible.count()
    distribution = {str(stars): 0 for stars in range(1, 6)}
    rated = (
        visible.filter(Comment.rating.isnot(None))
        .with_entities(Comment.rating, func.count(Comment.id))
        .group_by(Comment.rating)
        .all()
    )
    ratings = 0
    stars_total = 0
    for stars, count in rated:
        distribution[str(stars)] = count
        ratings += count
        stars_total += stars * count

    return {
        "success": True,
        "data": {
            "completedCount": completed,
            "currentlyLearning": learning,
            "totalLearners": completed + learning,
            "averageRating": round(stars_total / ratings, 1) if ratings else 0,
            "totalComments": total_comments,
            "averageCompletionTime": estimated_minutes(course),
            "ratingDistribution": distribution,
        },
    }


@main_bp.route("/courses/<course_id>/content")
def course_content(course_id):
    course = COURSES.get(course_id)
    if course is None:
        raise NotFound("Course not found.")
    return {
        "success": True,
        "data": {
            "contentUrl": CONTENT_PAGES.get(course_id, COMING_SOON_PAGE),
            "courseId": course_id,
            "title": course["title"],
        },
    }


@main_bp.route("/courses/learning-paths/all")
def course_learning_paths():
    return {"success": True, "data": {"learningPaths": learning_paths()}}


# ---- Progress
@main_bp.route("/users/progress", methods=["POST"])
@login_required
def progress_update():
    data = request.get_json(silent=True) or {}
    event = parse_event(data)
    try:
        minutes = max(0, int(data.get("timeSpent") or 0))
    except (TypeError, ValueError):
        raise InvalidRequest("timeSpent must be a number of minutes.") from None

    store = profile_store()
    now = datetime.now(timezone.utc)
    with store.editing(current_user.id) as profile:
        earned = apply_event(profile, event, now)
        profile.study_minutes += minutes
        update_streak(profile, now, store.tz)
        award_points(profile, earned, data["action"])
        new_badges = check_badges(profile, now)

    return {
        "success": True,
        "message": "Progress updated.",
        "data": {
            "pointsEarned": earned,
            "totalPoints": profile.points,
            "level": profile.level,
            "streakDays": profile.streak_days,
            "newBadges": new_badges,
        },
    }


# ---- Users
@main_bp.route("/users/leaderboard")
def leaderboard():
    kind = request.args.get("type", "points")
    if kind not in LEADERBOARD_FIELDS:
        kind = "points"
    field = LEADERBOARD_FIELDS[kind]
    page, limit = page_args(request, default_limit=50)

    visible = User.query.filter(User.show_on_leaderboard.is_(True))
    users = (
        visible.order_by(field.desc(), User.created_at.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    board = []
    for index, user in enumerate(users):
        entry = user.public_dict()
        entry.update({
            "rank": (page - 1) * limit + index + 1,
            "commentsCount": user.comments_count,
            "badges": [b.badge_id for b in user.badges[:3]],
        })
        board.append(entry)

    current_rank = None
    if current_user.is_authenticated:
        mine = getattr(current_user, field.key) or 0
        current_rank = visible.filter(field > mine).count() + 1

    return {
        "success": True,
        "data": {
            "leaderboard": board,
            "currentUserRank": current_rank,
            "pagination": {"page": page, "limit": limit, "hasMore": len(users) == limit},
            "type": kind,
        },
    }


@main_bp.route("/users/<int:user_id>/profile")
def public_profile(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found.")
    profile = profile_store().load(user_id)
    recent = (
        Comment.query.filter_by(author_id=user_id, is_approved=True, is_deleted=False)
        .order_by(Comment.created_at.desc())
        .limit(5)
        .all()
    )
    total_likes = (
        db.session.query(func.coalesce(func.sum(Comment.likes_count), 0))
        .filter(Comment.author_id == user_id)
        .scalar()
    )
    data = user.public_dict()
    data.update({
        "badges": profile.badge_ids(),
        "completedCourses": len(profile.completed_courses),
        "joinedAt": user.created_at.isoformat() if user.created_at else None,
        "stats": {"commentsCount": user.comments_count, "totalLikes": int(total_likes)},
        "recentComments": [c.to_dict() for c in recent],
    })
    is_own = current_user.is_authenticated and current_user.id == user_id
    return {"success": True, "data": {"profile": data, "isOwnProfile": is_own}}


@main_bp.route("/users/achievements")
@login_required
def achievements():
    profile = profile_store().load(current_user.id)
    earned = {b.badge_id: b.earned_at for b in profile.badges}
    items = [
        {
            "id": badge.id,
            "name": badge.name,
            "description": badge.description,
            "icon": badge.icon,
            "category": badge.category,
            "earned": badge.id in earned,
            "earnedAt": earned[badge.id].isoformat() if badge.id in earned else None,
        }
        for badge in BADGES
    ]
    return {
        "success": True,
        "data": {
            "achievements": items,
            "totalEarned": len(earned),
            "totalAvailable": len(BADGES),
            "progress": {
                "level": profile.level,
                "totalPoints": profile.points,
                "streakDays": profile.streak_days,
                "completedCourses": len(profile.completed_courses),
            },
        },
    }


@main_bp.route("/users/stats")
@login_required
def stats():
    profile = profile_store().load(current_user.id)
    week_ago = datetime.now(timezone.utc) - timedelta(days=7)
    week_comments = Comment.query.filter(
        Comment.author_id == current_user.id, Comment.created_at >= week_ago
    ).count()
    return {
        "success": True,
        "data": {
            "overview": {
                "level": profile.level,
                "totalPoints": profile.points,
                "nextLevelAt": next_level_target(profile.points),
                "levelProgress": level_progress(profile.points),
                "streakDays": profile.streak_days,
                "totalStudyHours": round(profile.study_minutes / 60),
            },
            "achievements": {
                "totalBadges": len(profile.badges),
                "completedCourses": len(profile.completed_courses),
                "completedExercises": len(profile.completed_exercises),
            },
            "activity": {
                "totalComments": profile.comments_count,
                "thisWeekComments": week_comments,
                "likesReceived": current_user.likes_received,
                "loginCount": current_user.login_count,
            },
            "recentActivity": {
                "currentCourse": profile.current_course.course_id if profile.current_course else None,
                "recentBadges": profile.badge_ids()[-3:],
            },
        },
    }


@main_bp.route("/users/search")
def search_users():
    q = (request.args.get("q") or "").strip()
    if len(q) < 2:
        raise InvalidRequest("Search needs at least 2 characters.")
    _page, limit = page_args(request)
    users = User.query.filter(User.username.ilike(f"%{q}%")).limit(limit).all()
    return {"success": True, "data": {"users": [u.public_dict() for u in users], "query": q}}


@main_bp.route("/users/<int:user_id>/adjust", methods=["POST"])
@login_required
def admin_adjust_points(user_id):
    admin_required()
    data = request.get_json(silent=True) or {}
    try:
        delta = int(data.get("delta"))
    except (TypeError, ValueError):
        raise InvalidRequest("delta must be a whole number.") from None
    with profile_store().editing(user_id) as profile:
        adjust_points(profile, delta)
    return {
        "success": True,
        "message": "Points adjusted.",
        "data": {"totalPoints": profile.points, "level": profile.level, "reason": data.get("reason")},
    }


# ---- Admin
ROLES = ("student", "instructor", "admin")
ADMIN_SORT_FIELDS = {
    "createdAt": User.created_at,
    "username": User.username,
    "points": User.points,
    "level": User.level,
}


def _admin_user_dict(user):
    data = user.public_dict()
    data.update({
        "email": user.email,
        "isAdmin": bool(user.is_admin),
        "loginCount": user.login_count,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
    })
    return data


@main_bp.route("/users/admin/list")
@login_required
def admin_list_users():
    admin_required()
    page, limit = page_args(request)
    query = User.query
    role = request.args.get("role")
    if role:
        query = query.filter(User.role == role)
    search = (request.args.get("search") or "").strip()
    if search:
        query = query.filter(User.username.ilike(f"%{search}%") | User.email.ilike(f"%{search}%"))

    field = ADMIN_SORT_FIELDS.get(request.args.get("sortBy"), User.created_at)
    ordered = field.asc() if request.args.get("sortOrder") in ("1", "asc") else field.desc()
    total = query.count()
    users = query.order_by(ordered, User.id.asc()).offset((page - 1) * limit).limit(limit).all()
    return {
        "success": True,
        "data": {
            "users": [_admin_user_dict(u) for u in users],
            "pagination": {"page": page, "limit": limit, "total": total, "pages": -(-total // limit)},
        },
    }


@main_bp.route("/users/<int:user_id>/role", methods=["PUT"])
@login_required
def admin_set_role(user_id):
    admin_required()
    role = (request.get_json(silent=True) or {}).get("role")
    if role not in ROLES:
        raise InvalidRequest("role must be student, instructor or admin.")
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found.")
    user.role = role
    user.is_admin = role == "admin"
    db.session.commit()
    logger.info("Admin %s set role of user %s to %s", current_user.id, user_id, role)
    return {"success": True, "message": "Role updated.", "data": {"user": _admin_user_dict(user)}}
