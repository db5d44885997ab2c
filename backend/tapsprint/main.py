from flask import Blueprint, jsonify
from flask_login import login_required, current_user

from tapsprint.services.sprint import get_orchestrator

main = Blueprint('main', __name__)

@main.route('/health')
def health():
    stats = get_orchestrator().stats()
    return jsonify({'status': 'ok', **stats})

@main.route('/auth/verify', methods=['GET'])
@login_required
def verify():
    return jsonify({'success': True, 'user': current_user.to_dict()})
