from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config
from spincricket.services.match import DeliveryEngine
from spincricket.services.rooms import RoomRegistry

socketio = SocketIO(async_mode=None)
engine = DeliveryEngine()
rooms = RoomRegistry()
# A closed room takes its match with it
rooms.on_room_closed(engine.teardown)


def _allowed_origins(config):
    return [o.strip() for o in (config.get('FRONTEND_URL') or '').split(',') if o.strip()]

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = _allowed_origins(flask_app.config)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)
    engine.init_app(flask_app)

    from spincricket.main import main
    flask_app.register_blueprint(main)

    from spincricket.api.rooms import rooms_api
    flask_app.register_blueprint(rooms_api, url_prefix='/api/rooms')

    # Register Socket.IO event handlers
    from spincricket.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    flask_app.logger.info(
        f"[config] ball_quota={engine.ball_quota} wicket_quota={engine.wicket_quota} origins={allowed_origins}"
    )
    return flask_app
