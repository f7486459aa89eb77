from datetime import datetime, timezone

from flask import request
from flask_login import current_user, login_required

from academy.errors import InvalidRequest
from academy.progress import POINTS

from .client import SYSTEM_PROMPTS


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def _required_text(data, name, message):
    value = data.get(name)
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequest(message)
    return value.strip()


def register_tutor_routes(app, profiles, conversations, tutor):
    """Attach the AI tutor proxy; history lives in ``conversations``."""

    @app.route("/api/ai/chat", methods=["POST"])
    @login_required
    def ai_chat():
        data = request.get_json(silent=True) or {}
        message = _required_text(data, "message", "Please enter a question.")
        context = data.get("context") or "general"
        if data.get("clearHistory"):
            conversations.clear(current_user.id, context)

        messages = [{"role": "system", "content": SYSTEM_PROMPTS.get(context, SYSTEM_PROMPTS["general"])}]
        messages.extend(conversations.history(current_user.id, context))
        course_id = data.get("courseId")
        prefix = f"Current course: {course_id}\n" if course_id else ""
        messages.append({"role": "user", "content": prefix + message})

        reply = tutor.complete(messages)

        conversations.append(current_user.id, context, "user", message)
        conversations.append(current_user.id, context, "assistant", reply)
        profiles.record(current_user.id, POINTS["ai_chat"], "ai_chat")
        return {"success": True, "data": {"response": reply, "context": context, "timestamp": _now_iso()}}

    @app.route("/api/ai/analyze-code", methods=["POST"])
    @login_required
    def ai_analyze_code():
        data = request.get_json(silent=True) or {}
        code = _required_text(data, "code", "Please provide the code to analyse.")
        language = data.get("language") or "javascript"
        analysis = tutor.complete(
            [
                {"role": "system", "content": SYSTEM_PROMPTS["code_analysis"]},
                {"role": "user", "content": f"Review the security of this {language} code:\n\n```{language}\n{code}\n```"},
            ],
            temperature=0.3,
        )
        profiles.record(current_user.id, POINTS["code_analysis"], "code_analysis")
        return {"success": True, "data": {"analysis": analysis, "language": language, "timestamp": _now_iso()}}

    @app.route("/api/ai/learning-advice", methods=["POST"])
    @login_required
    def ai_learning_advice():
        data = request.get_json(silent=True) or {}
        profile = profiles.load(current_user.id)
        learner = "\n".join([
            f"- Username: {current_user.username}",
            f"- Level: {profile.level}",
            f"- Total points: {profile.points}",
            f"- Completed courses: {len(profile.completed_courses)}",
            f"- Streak: {profile.streak_days} days",
            f"- Current level: {data.get('currentLevel') or 'beginner'}",
            f"- Interests: {data.get('interests') or 'general security'}",
            f"- Goals: {data.get('goals') or 'improve security skills'}",
            f"- Time available: {data.get('timeAvailable') or '1-2 hours a day'}",
        ])
        advice = tutor.complete(
            [
                {"role": "system", "content": SYSTEM_PROMPTS["learning_path"]},
                {"role": "user", "content": f"Suggest a personal security learning plan for:\n{learner}"},
            ],
            temperature=0.6,
        )
        profile, _result = profiles.record(current_user.id, POINTS["learning_advice"], "learning_advice")
        return {
            "success": True,
            "data": {
                "advice": advice,
                "userLevel": profile.level,
                "totalPoints": profile.points,
                "timestamp": _now_iso(),
            },
        }

    @app.route("/api/ai/explain-vulnerability", methods=["POST"])
    @login_required
    def ai_explain_vulnerability():
        data = request.get_json(silent=True) or {}
        vulnerability = _required_text(data, "vulnerability", "Name the vulnerability to explain.")
        extra = f"\nContext: {data['context']}" if data.get("context") else ""
        explanation = tutor.complete(
            [
                {"role": "system", "content": SYSTEM_PROMPTS["vulnerability_explanation"]},
                {"role": "user", "content": f'Explain the "{vulnerability}" vulnerability in detail.{extra}'},
            ],
            temperature=0.4,
        )
        profiles.record(current_user.id, POINTS["vulnerability_explanation"], "vulnerability_explanation")
        return {
            "success": True,
            "data": {"explanation": explanation, "vulnerability": vulnerability, "timestamp": _now_iso()},
        }

    @app.route("/api/ai/conversation/<context>", methods=["DELETE"])
    @login_required
    def ai_clear_conversation(context):
        conversations.clear(current_user.id, context)
        return {"success": True, "message": "Conversation cleared."}

    @app.route("/api/ai/stats")
    @login_required
    def ai_stats():
        profile = profiles.load(current_user.id)
        return {
            "success": True,
            "data": {
                # user + assistant message per exchange
                "conversationCount": conversations.message_count(current_user.id) // 2,
                "available": tutor.available,
                "availableContexts": sorted(SYSTEM_PROMPTS),
                "currentLevel": profile.level,
                "totalPoints": profile.points,
            },
        }
