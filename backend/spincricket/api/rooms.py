from flask import Blueprint, jsonify
from spincricket import engine, rooms

rooms_api = Blueprint('rooms', __name__)


@rooms_api.route('', methods=['GET'])
def list_rooms():
    """
    Lists every open room with its members and their connection state.
    """
    return jsonify([room.to_dict() for room in rooms.all_rooms()]), 200


@rooms_api.route('/<string:room_id>/state', methods=['GET'])
def get_match_state(room_id):
    """
    Returns the latest match snapshot for a room.
    """
    match = engine.query(room_id)
    if match is None:
        return jsonify({'error': 'Room not found'}), 404
    return jsonify(match.to_dict()), 200
