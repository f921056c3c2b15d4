# portal_messaging/api/routes/notification_routes.py

from flask import Blueprint, jsonify

from portal_messaging.api.middlewares.auth_middleware import current_identity, require_auth
from portal_messaging.api.routes._deps import build_read_tracker
from portal_messaging.api.schemas.notification_schema import UnreadSummaryResponse
from portal_messaging.infrastructure.database.session import db_session

bp_notifications = Blueprint("notifications", __name__)


@bp_notifications.get("/unread")
@require_auth
def unread_summary():
    identity = current_identity()

    with db_session() as session:
        tracker = build_read_tracker(session)
        summary = tracker.get_unread_summary(user_id=identity.user_id, role=identity.role)

    return jsonify(UnreadSummaryResponse(**summary).model_dump()), 200
