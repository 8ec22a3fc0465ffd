from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from cubetag.errors import PersistenceError
from cubetag.models import Account
from cubetag.services.accounts import AccountStore
from cubetag.services.game.catalog import ACHIEVEMENTS

main = Blueprint('main', __name__)
accounts = AccountStore()


@main.route('/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    account = Account.query.filter_by(username=data.get('username')).first()
    if account and account.check_password(data.get('password') or ''):
        login_user(account, remember=True)
        return jsonify({"success": True, "user": account.to_dict()})
    return jsonify({"success": False, "message": "Invalid credentials"}), 401


@main.route('/register', methods=['POST', 'OPTIONS'])
def register():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''
    if not 3 <= len(username) <= 32 or not password:
        return jsonify({"success": False, "message": "Username (3-32 chars) and password are required"}), 400
    if accounts.find(username):
        return jsonify({"success": False, "message": "Username already exists"}), 400
    try:
        account = accounts.create(username, password)
    except PersistenceError:
        return jsonify({"success": False, "message": "Could not create account, try again"}), 503
    login_user(account)
    return jsonify({"success": True, "user": account.to_dict()}), 201


@main.route('/check_login', methods=['GET', 'OPTIONS'])
def check_login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200

    @login_required
    def protected_check():
        return jsonify({"success": True, "user": current_user.to_dict()})

    return protected_check()


@main.route('/logout', methods=['POST', 'OPTIONS'])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})


@main.route('/profile')
@login_required
def profile():
    unlocked = set(current_user.achievements)
    return jsonify({
        'user': current_user.to_dict(),
        'achievements': [dict(a.to_dict(), unlocked=a.id in unlocked) for a in ACHIEVEMENTS],
    })
