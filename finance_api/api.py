"""
api.py - Flask REST API Server

Endpoints:
  POST /register         create a user
  POST /login            exchange login/password for a bearer token
  GET  /protected        token check
  POST /get-user-id      resolve a login to its id
  GET  /categories       categories of ?user_id=
  POST /get-categories   categories of {user_id}
  POST /getTransactions  filtered transactions of {user_id, category, srok}
  GET  /test             database liveness (text/plain)

Error bodies are {"message": ...} with the Russian strings clients match on.
"""

import sys
import logging
from datetime import date, datetime
from decimal import Decimal
from functools import wraps

from flask import Blueprint, Flask, Response, current_app, jsonify, request
from flask.json.provider import DefaultJSONProvider
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from finance_api.config import ConfigError, load_settings
from finance_api.database import Database
from finance_api.security import TokenError, TokenService, hash_password, verify_password
from finance_api.tls import load_tls_context
from finance_common.models import ALL_CATEGORIES, ALL_CATEGORIES_LABEL
from finance_common.utils import mask_sensitive, period_cutoff

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("finance_api")

bp = Blueprint("finance", __name__)

# ─── WIRE MESSAGES ────────────────────────────────────────────────────────────

MSG_CREDENTIALS_REQUIRED = "Логин и пароль обязательны."
MSG_REGISTERED           = "Пользователь зарегистрирован"
MSG_REGISTER_FAILED      = "Ошибка регистрации пользователя"
MSG_LOGIN_OK             = "Успешный вход"
MSG_BAD_CREDENTIALS      = "Неверный логин или пароль."
MSG_LOGIN_FAILED         = "Ошибка авторизации"
MSG_ACCESS_GRANTED       = "Доступ разрешён"
MSG_TOKEN_MISSING        = "Токен не предоставлен"
MSG_TOKEN_INVALID        = "Неверный токен"
MSG_LOGIN_REQUIRED       = "Логин обязателен."
MSG_USER_NOT_FOUND       = "Пользователь не найден."
MSG_USER_ID_FAILED       = "Ошибка получения идентификатора пользователя"
MSG_USER_ID_REQUIRED     = "Идентификатор пользователя обязателен."
MSG_CATEGORIES_FAILED    = "Ошибка получения категорий"
MSG_TX_FIELDS_REQUIRED   = "Идентификатор пользователя, категория и срок обязательны."
MSG_BAD_CATEGORY         = "Некорректная категория."
MSG_TX_FAILED            = "Ошибка получения транзакций"
MSG_SERVER_ALIVE         = "Сервер работает. Текущее время: {now}"
MSG_DB_UNAVAILABLE       = "Ошибка подключения к базе данных"
MSG_ROUTE_NOT_FOUND      = "Маршрут не найден"
MSG_METHOD_NOT_ALLOWED   = "Метод не поддерживается"
MSG_INTERNAL_ERROR       = "Внутренняя ошибка сервера"


# ─── JSON ─────────────────────────────────────────────────────────────────────

class ApiJSONProvider(DefaultJSONProvider):
    """UTF-8 output in insertion order; timestamps as ISO-8601, numerics as strings."""
    ensure_ascii = False
    sort_keys = False

    @staticmethod
    def default(o):
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        if isinstance(o, Decimal):
            return str(o)
        return DefaultJSONProvider.default(o)


# ─── HELPERS ──────────────────────────────────────────────────────────────────

def _db() -> Database:
    return current_app.extensions["finance_db"]


def _tokens() -> TokenService:
    return current_app.extensions["finance_tokens"]


def _json_body() -> dict:
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


def _category_id(value):
    """
    A category id is a JSON integer or a string of one ("7", " 7").
    Booleans, floats (7.0, 7.9) and decimal strings ("7.0") are rejected.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _message(text: str, status: int):
    return jsonify({"message": text}), status


def guarded(message: str, plain: bool = False):
    """
    Turn any unexpected failure inside the handler into a 500 carrying the
    endpoint's message. HTTP errors raised by Flask pass through untouched.
    """
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except HTTPException:
                raise
            except Exception:
                logger.exception(f"[{request.method} {request.path}] {message}")
                if plain:
                    return Response(message, status=500, mimetype="text/plain")
                return _message(message, 500)
        return decorated
    return decorator


# ─── AUTH ROUTES ──────────────────────────────────────────────────────────────

@bp.route("/register", methods=["POST"])
@guarded(MSG_REGISTER_FAILED)
def register():
    data = _json_body()
    logger.debug(f"[REGISTER] body={mask_sensitive(data)}")
    login, password = data.get("login"), data.get("password")
    if not login or not password:
        return _message(MSG_CREDENTIALS_REQUIRED, 400)

    rounds = current_app.config["BCRYPT_ROUNDS"]
    user = _db().create_user(login, hash_password(password, rounds))
    logger.info(f"[REGISTER] User '{user.login}' created with id={user.id}")
    return jsonify({"message": MSG_REGISTERED, "user": user.public_dict()}), 201


@bp.route("/login", methods=["POST"])
@guarded(MSG_LOGIN_FAILED)
def login():
    data = _json_body()
    logger.debug(f"[LOGIN] body={mask_sensitive(data)}")
    login, password = data.get("login"), data.get("password")
    if not login or not password:
        return _message(MSG_CREDENTIALS_REQUIRED, 400)

    user = _db().find_user_by_login(login)
    if user is None or not verify_password(password, user.password):
        logger.info(f"[LOGIN] Rejected credentials for '{login}'")
        return _message(MSG_BAD_CREDENTIALS, 401)

    token = _tokens().issue(user.id)
    logger.info(f"[LOGIN] Token issued for user id={user.id}")
    return jsonify({"message": MSG_LOGIN_OK, "token": token}), 200


@bp.route("/protected", methods=["GET"])
def protected():
    # Raw token, no "Bearer " prefix
    token = request.headers.get("Authorization")
    if not token:
        return _message(MSG_TOKEN_MISSING, 401)
    try:
        claims = _tokens().verify(token)
    except TokenError:
        return _message(MSG_TOKEN_INVALID, 401)
    return jsonify({"message": MSG_ACCESS_GRANTED, "userId": claims.get("userId")}), 200


# ─── LOOKUP ROUTES ────────────────────────────────────────────────────────────

@bp.route("/get-user-id", methods=["POST"])
@guarded(MSG_USER_ID_FAILED)
def get_user_id():
    login = _json_body().get("login")
    if not login:
        return _message(MSG_LOGIN_REQUIRED, 400)
    user_id = _db().get_user_id(login)
    if user_id is None:
        return _message(MSG_USER_NOT_FOUND, 404)
    return jsonify({"user_id": user_id}), 200


@bp.route("/categories", methods=["GET"])
@guarded(MSG_CATEGORIES_FAILED)
def categories():
    user_id = request.args.get("user_id")
    if not user_id:
        return _message(MSG_USER_ID_REQUIRED, 400)
    rows = _db().list_categories(user_id)
    return jsonify([c.to_dict() for c in rows]), 200


@bp.route("/get-categories", methods=["POST"])
@guarded(MSG_CATEGORIES_FAILED)
def get_categories():
    user_id = _json_body().get("user_id")
    if not user_id:
        return _message(MSG_USER_ID_REQUIRED, 400)
    rows = _db().list_categories(user_id)
    return jsonify({"categories": [c.to_dict() for c in rows]}), 200


@bp.route("/getTransactions", methods=["POST"])
@guarded(MSG_TX_FAILED)
def get_transactions():
    data = _json_body()
    user_id, category, period = data.get("user_id"), data.get("category"), data.get("srok")
    if not user_id or not category or not period:
        return _message(MSG_TX_FIELDS_REQUIRED, 400)

    category_id = None
    if category != ALL_CATEGORIES:
        category_id = _category_id(category)
        if category_id is None:
            return _message(MSG_BAD_CATEGORY, 400)

    since = period_cutoff(period)
    db = _db()
    transactions = db.find_transactions(user_id, category_id=category_id, since=since)

    if category_id is None:
        category_name = ALL_CATEGORIES_LABEL
    else:
        category_name = db.get_category_name(category_id, user_id)
    for tx in transactions:
        tx.category_name = category_name

    logger.info(f"[TRANSACTIONS] user={user_id} category={category_id} "
                f"since={since} -> {len(transactions)} rows")
    return jsonify([tx.to_dict() for tx in transactions]), 200


@bp.route("/test", methods=["GET"])
@guarded(MSG_DB_UNAVAILABLE, plain=True)
def server_check():
    now = _db().now()
    return Response(MSG_SERVER_ALIVE.format(now=now), status=200, mimetype="text/plain")


# ─── APP FACTORY ──────────────────────────────────────────────────────────────

def create_app(settings, database: Database = None) -> Flask:
    app = Flask(__name__)
    app.json = ApiJSONProvider(app)
    app.config["BCRYPT_ROUNDS"] = settings.bcrypt_rounds

    app.extensions["finance_db"] = database if database is not None else Database(settings)
    app.extensions["finance_tokens"] = TokenService(settings.jwt_secret, settings.jwt_expiry_sec)

    CORS(
        app,
        resources={r"/*": {"origins": "*"}},
        send_wildcard=True,
        allow_headers=["Content-Type", "Authorization"],
    )
    app.register_blueprint(bp)

    @app.errorhandler(404)
    def not_found(e):
        return _message(MSG_ROUTE_NOT_FOUND, 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return _message(MSG_METHOD_NOT_ALLOWED, 405)

    @app.errorhandler(500)
    def internal(e):
        logger.exception("Internal server error")
        return _message(MSG_INTERNAL_ERROR, 500)

    return app


# ─── STARTUP ──────────────────────────────────────────────────────────────────

def main():
    try:
        settings = load_settings()
        logging.getLogger().setLevel(settings.log_level)
        ssl_context = load_tls_context(settings.cert_file, settings.key_file)
    except ConfigError as e:
        logger.critical(f"Startup aborted: {e}")
        sys.exit(1)

    app = create_app(settings)
    logger.info(f"Сервер работает на https://{settings.server_host}:{settings.server_port}")
    try:
        app.run(
            host=settings.server_host,
            port=settings.server_port,
            ssl_context=ssl_context,
            threaded=True,
            debug=False,
        )
    finally:
        app.extensions["finance_db"].close()


if __name__ == "__main__":
    main()
