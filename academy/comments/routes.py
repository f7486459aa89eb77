from datetime import datetime, timedelta, timezone

from flask import Blueprint, request
from flask_login import current_user, login_required
from sqlalchemy.exc import IntegrityError

from ..courses import COURSES
from ..errors import Forbidden, InvalidRequest, NotFound
from ..models import Comment, CommentLike, CommentReport, User, db
from ..progress import POINTS, award_points, check_badges, update_streak
from ..utils import admin_required, page_args, profile_store

comments_bp = Blueprint("comments", __name__, url_prefix="/api/comments")

MAX_LENGTH = 2000
MAX_REPLY_LEVEL = 3
EDIT_WINDOW = timedelta(hours=24)
AUTO_HIDE_REPORTS = 3
CATEGORIES = {"general", "question", "tip", "bug-report", "suggestion"}
REPORT_REASONS = {"spam", "inappropriate", "offensive", "copyright", "other"}


def _get_comment(comment_id, visible_only=False):
    comment = db.session.get(Comment, comment_id)
    if comment is None or comment.is_deleted:
        raise NotFound("Comment not found.")
    if visible_only and not comment.is_approved:
        raise NotFound("Comment not found.")
    return comment


def _clean_content(data):
    content = (data.get("content") or "").strip()
    if not content:
        raise InvalidRequest("Comment content cannot be empty.")
    if len(content) > MAX_LENGTH:
        raise InvalidRequest(f"Comments are limited to {MAX_LENGTH} characters.")
    return content


def _owner_or_admin(comment):
    return comment.author_id == current_user.id or current_user.is_admin


def _aware(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@comments_bp.route("/course/<course_id>")
def course_comments(course_id):
    page, limit = page_args(request)
    sort = request.args.get("sort", "newest")
    query = Comment.query.filter_by(
        course_id=course_id, parent_id=None, is_approved=True, is_deleted=False
    )
    if sort == "popular":
        query = query.order_by(Comment.likes_count.desc(), Comment.created_at.desc())
    elif sort == "oldest":
        query = query.order_by(Comment.created_at.asc())
    else:
        query = query.order_by(Comment.created_at.desc())
    total = query.count()
    comments = query.offset((page - 1) * limit).limit(limit).all()
    return {
        "success": True,
        "data": {
            "comments": [c.to_dict(with_replies=True) for c in comments],
            "pagination": {"page": page, "limit": limit, "total": total},
        },
    }


@comments_bp.route("/<int:comment_id>")
def comment_detail(comment_id):
    comment = _get_comment(comment_id, visible_only=True)
    return {"success": True, "data": {"comment": comment.to_dict(with_replies=True)}}


@comments_bp.route("", methods=["POST"])
@login_required
def create_comment():
    data = request.get_json(silent=True) or {}
    course_id = data.get("courseId")
    if not course_id:
        raise InvalidRequest("courseId and content are required.")
    if course_id not in COURSES:
        raise NotFound("Course not found.")
    content = _clean_content(data)

    rating = data.get("rating")
    if rating is not None:
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise InvalidRequest("Rating must be between 1 and 5.")
    category = data.get("category") or "general"
    if category not in CATEGORIES:
        raise InvalidRequest("Unknown comment category.")

    parent = None
    level = 0
    if data.get("parentId") is not None:
        parent = _get_comment(data["parentId"], visible_only=True)
        level = parent.reply_level + 1
        if level > MAX_REPLY_LEVEL:
            raise InvalidRequest(f"Replies can only nest {MAX_REPLY_LEVEL} levels deep.")

    comment = Comment(
        course_id=course_id,
        author_id=current_user.id,
        content=content,
        rating=rating,
        category=category,
        parent_id=parent.id if parent else None,
        reply_level=level,
        edit_history=[],
    )
    db.session.add(comment)
    db.session.commit()

    reason = "comment_reply" if parent else "comment_post"
    store = profile_store()
    now = datetime.now(timezone.utc)
    with store.editing(current_user.id) as profile:
        profile.comments_count += 1
        update_streak(profile, now, store.tz)
        earned = award_points(profile, POINTS[reason], reason)
        new_badges = check_badges(profile, now)

    return {
        "success": True,
        "message": "Reply posted!" if parent else "Comment posted!",
        "data": {"comment": comment.to_dict(), "pointsEarned": earned, "newBadges": new_badges},
    }, 201


@comments_bp.route("/<int:comment_id>", methods=["PUT"])
@login_required
def edit_comment(comment_id):
    comment = _get_comment(comment_id)
    if not _owner_or_admin(comment):
        raise Forbidden("You can only edit your own comments.")
    if not current_user.is_admin and datetime.now(timezone.utc) - _aware(comment.created_at) > EDIT_WINDOW:
        raise Forbidden("Comments can no longer be edited 24 hours after posting.")
    content = _clean_content(request.get_json(silent=True) or {})

    history = list(comment.edit_history or [])
    history.append({"content": comment.content, "editedAt": datetime.now(timezone.utc).isoformat()})
    comment.edit_history = history
    comment.content = content
    comment.is_edited = True
    db.session.commit()
    return {"success": True, "message": "Comment updated.", "data": {"comment": comment.to_dict()}}


@comments_bp.route("/<int:comment_id>", methods=["DELETE"])
@login_required
def delete_comment(comment_id):
    comment = _get_comment(comment_id)
    if not _owner_or_admin(comment):
        raise Forbidden("You can only delete your own comments.")
    comment.is_deleted = True
    comment.deleted_at = datetime.now(timezone.utc)
    db.session.commit()
    # the count drops, points and badges already earned stay
    with profile_store().editing(comment.author_id) as profile:
        profile.comments_count = max(0, profile.comments_count - 1)
    return {"success": True, "message": "Comment deleted."}


@comments_bp.route("/<int:comment_id>/like", methods=["POST"])
@login_required
def toggle_like(comment_id):
    comment = _get_comment(comment_id, visible_only=True)
    author = db.session.get(User, comment.author_id)
    like = CommentLike.query.filter_by(comment_id=comment.id, user_id=current_user.id).first()
    if like:
        db.session.delete(like)
        comment.likes_count = max(0, (comment.likes_count or 0) - 1)
        author.likes_received = max(0, (author.likes_received or 0) - 1)
        liked = False
    else:
        db.session.add(CommentLike(comment_id=comment.id, user_id=current_user.id))
        comment.likes_count = (comment.likes_count or 0) + 1
        author.likes_received = (author.likes_received or 0) + 1
        liked = True
    db.session.commit()
    return {"success": True, "data": {"liked": liked, "likesCount": comment.likes_count}}


@comments_bp.route("/<int:comment_id>/report", methods=["POST"])
@login_required
def report_comment(comment_id):
    data = request.get_json(silent=True) or {}
    reason = data.get("reason")
    if reason not in REPORT_REASONS:
        raise InvalidRequest("Pick a valid report reason.")
    comment = _get_comment(comment_id)
    if comment.author_id == current_user.id:
        raise InvalidRequest("You cannot report your own comment.")

    db.session.add(CommentReport(
        comment_id=comment.id,
        reporter_id=current_user.id,
        reason=reason,
        description=(data.get("description") or "")[:500] or None,
    ))
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise InvalidRequest("You already reported this comment.") from None

    if CommentReport.query.filter_by(comment_id=comment.id, resolved=False).count() >= AUTO_HIDE_REPORTS:
        comment.is_approved = False
        comment.moderation_reason = "Hidden after repeated reports"
    db.session.commit()
    return {"success": True, "message": "Report received, we will look into it."}


@comments_bp.route("/user/<int:user_id>")
def user_comments(user_id):
    page, limit = page_args(request)
    comments = (
        Comment.query.filter_by(author_id=user_id, is_approved=True, is_deleted=False)
        .order_by(Comment.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {"success": True, "data": {"comments": [c.to_dict() for c in comments]}}


@comments_bp.route("/<int:comment_id>/moderate", methods=["PUT"])
@login_required
def moderate_comment(comment_id):
    admin_required()
    data = request.get_json(silent=True) or {}
    action = data.get("action")
    if action not in {"approve", "reject"}:
        raise InvalidRequest("action must be approve or reject.")
    comment = _get_comment(comment_id)
    comment.is_approved = action == "approve"
    comment.moderation_reason = data.get("reason") or ""
    comment.moderated_by = current_user.id
    comment.moderated_at = datetime.now(timezone.utc)
    if action == "approve":
        CommentReport.query.filter_by(comment_id=comment.id).update({"resolved": True})
    db.session.commit()
    return {
        "success": True,
        "message": "Comment approved." if action == "approve" else "Comment rejected.",
        "data": {"comment": comment.to_dict()},
    }


@comments_bp.route("/admin/pending")
@login_required
def pending_comments():
    admin_required()
    page, limit = page_args(request)
    comments = (
        Comment.query.filter_by(is_approved=False, is_deleted=False)
        .order_by(Comment.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {"success": True, "data": {"comments": [c.to_dict() for c in comments]}}
