from flask import Blueprint, jsonify

from tapsprint.services.sprint import get_orchestrator
from tapsprint.services.sprint.errors import SprintError


sprint = Blueprint('sprint', __name__)


@sprint.errorhandler(SprintError)
def handle_sprint_error(exc: SprintError):
    return jsonify({'success': False, 'error': exc.message, 'code': exc.code}), exc.status


@sprint.route('/start', methods=['POST'])
def create_session():
    session_id = get_orchestrator().create_session()
    return jsonify({
        'success': True,
        'session_id': session_id,
        'message': 'Sprint game created successfully',
    }), 201


@sprint.route('/<string:session_id>/state', methods=['GET'])
def get_session_state(session_id):
    return jsonify(get_orchestrator().session_snapshot(session_id))


@sprint.route('/results/<string:session_id>', methods=['GET'])
def get_results(session_id):
    results = get_orchestrator().get_results(session_id)
    return jsonify({'success': True, 'session_id': session_id, 'results': results})
