from flask import Blueprint, jsonify, current_app

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Stadt-Land-Fluss game server!'})


@main.route('/health')
def health():
    store = current_app.extensions['session_machine'].store
    return jsonify({'status': 'ok', 'store': type(store).__name__, 'sessions': len(store.codes())})
