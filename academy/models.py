from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from datetime import datetime, timezone

db = SQLAlchemy()


def _now():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(30), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), default="student")  # student/instructor/admin
    is_admin = db.Column(db.Boolean, default=False)
    show_on_leaderboard = db.Column(db.Boolean, default=True)
    language = db.Column(db.String(5), default="en")
    theme = db.Column(db.String(10), default="dark")

    # progress
    points = db.Column(db.Integer, default=0, nullable=False)
    level = db.Column(db.Integer, default=1, nullable=False)
    streak_days = db.Column(db.Integer, default=0, nullable=False)
    last_active_date = db.Column(db.Date, nullable=True)
    current_course_id = db.Column(db.String(80), nullable=True)
    current_course_progress = db.Column(db.Integer, default=0)
    current_course_accessed_at = db.Column(db.DateTime, nullable=True)

    # stats
    login_count = db.Column(db.Integer, default=0, nullable=False)
    study_minutes = db.Column(db.Integer, default=0, nullable=False)
    comments_count = db.Column(db.Integer, default=0, nullable=False)
    likes_received = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=_now)

    badges = db.relationship("EarnedBadge", backref="user", cascade="all, delete-orphan",
                             order_by="EarnedBadge.id")
    course_completions = db.relationship("CourseCompletion", backref="user",
                                         cascade="all, delete-orphan")
    exercise_completions = db.relationship("ExerciseCompletion", backref="user",
                                           cascade="all, delete-orphan")

    def public_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "level": self.level,
            "totalPoints": self.points,
            "streakDays": self.streak_days,
        }


class EarnedBadge(db.Model):
    __tablename__ = "earned_badges"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    badge_id = db.Column(db.String(40), nullable=False)
    earned_at = db.Column(db.DateTime, default=_now)
    __table_args__ = (db.UniqueConstraint("user_id", "badge_id"),)


class CourseCompletion(db.Model):
    __tablename__ = "course_completions"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    course_id = db.Column(db.String(80), nullable=False)
    completed_at = db.Column(db.DateTime, default=_now)
    score = db.Column(db.Integer, default=100)
    __table_args__ = (db.UniqueConstraint("user_id", "course_id"),)


class ExerciseCompletion(db.Model):
    __tablename__ = "exercise_completions"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    exercise_id = db.Column(db.String(80), nullable=False)
    completed_at = db.Column(db.DateTime, default=_now)
    attempts = db.Column(db.Integer, default=1)
    best_score = db.Column(db.Integer, default=0)
    __table_args__ = (db.UniqueConstraint("user_id", "exercise_id"),)


class Comment(db.Model):
    __tablename__ = "comments"
    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.String(80), nullable=False, index=True)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    content = db.Column(db.Text, nullable=False)
    rating = db.Column(db.Integer, nullable=True)  # 1-5 stars
    category = db.Column(db.String(20), default="general")
    parent_id = db.Column(db.Integer, db.ForeignKey("comments.id"), nullable=True)
    reply_level = db.Column(db.Integer, default=0)
    likes_count = db.Column(db.Integer, default=0)
    is_approved = db.Column(db.Boolean, default=True)
    moderation_reason = db.Column(db.String(200), nullable=True)
    moderated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    moderated_at = db.Column(db.DateTime, nullable=True)
    edit_history = db.Column(db.JSON, default=list)
    is_edited = db.Column(db.Boolean, default=False)
    is_deleted = db.Column(db.Boolean, default=False)
    deleted_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=_now)

    author = db.relationship("User", foreign_keys=[author_id])
    replies = db.relationship("Comment", backref=db.backref("parent", remote_side=[id]),
                              order_by="Comment.created_at")

    def to_dict(self, with_replies=False):
        data = {
            "id": self.id,
            "courseId": self.course_id,
            "author": {"id": self.author.id, "username": self.author.username, "role": self.author.role},
            "content": self.content,
            "rating": self.rating,
            "category": self.category,
            "parentId": self.parent_id,
            "replyLevel": self.reply_level,
            "likesCount": self.likes_count,
            "isEdited": self.is_edited,
            "isApproved": self.is_approved,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if with_replies:
            data["replies"] = [
                r.to_dict(with_replies=True)
                for r in self.replies
                if r.is_approved and not r.is_deleted
            ]
        return data


class CommentLike(db.Model):
    __tablename__ = "comment_likes"
    id = db.Column(db.Integer, primary_key=True)
    comment_id = db.Column(db.Integer, db.ForeignKey("comments.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    liked_at = db.Column(db.DateTime, default=_now)
    __table_args__ = (db.UniqueConstraint("comment_id", "user_id"),)


class CommentReport(db.Model):
    __tablename__ = "comment_reports"
    id = db.Column(db.Integer, primary_key=True)
    comment_id = db.Column(db.Integer, db.ForeignKey("comments.id"), nullable=False)
    reporter_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    reason = db.Column(db.String(20), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    reported_at = db.Column(db.DateTime, default=_now)
    resolved = db.Column(db.Boolean, default=False)
    __table_args__ = (db.UniqueConstraint("comment_id", "reporter_id"),)
