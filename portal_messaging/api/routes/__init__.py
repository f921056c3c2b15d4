# portal_messaging/api/routes/__init__.py

from flask import Flask

from portal_messaging.api.routes.application_routes import bp_app_conv
from portal_messaging.api.routes.broadcast_routes import bp_broadcasts
from portal_messaging.api.routes.conversation_routes import bp_conv
from portal_messaging.api.routes.group_routes import bp_groups
from portal_messaging.api.routes.health_routes import bp_health
from portal_messaging.api.routes.message_routes import bp_msg
from portal_messaging.api.routes.notification_routes import bp_notifications


def register_routes(app: Flask, *, api_prefix: str, app_prefix: str) -> None:
    # health fora de /api (mas dentro do app)
    app.register_blueprint(bp_health, url_prefix=f"{app_prefix}/health")

    app.register_blueprint(bp_conv, url_prefix=f"{api_prefix}/conversations")
    app.register_blueprint(bp_app_conv, url_prefix=f"{api_prefix}/applications")
    app.register_blueprint(bp_msg, url_prefix=f"{api_prefix}/messages")
    app.register_blueprint(bp_groups, url_prefix=f"{api_prefix}/groups")
    app.register_blueprint(bp_broadcasts, url_prefix=f"{api_prefix}/broadcasts")
    app.register_blueprint(bp_notifications, url_prefix=f"{api_prefix}/notifications")
