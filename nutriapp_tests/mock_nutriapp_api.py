"""Mock NutriApp API server for offline testing of the harness and API suites.

Implements the endpoints the suites consume, with the same contract as the
real backend:
- POST /api/register, POST /api/login (sets ``session`` cookie)
- GET/POST /api/dishes, GET/PUT/DELETE /api/dishes/<id>
- GET /api/health

Each app owns a ``MockState`` so independent servers never share users.
"""
from __future__ import annotations

import itertools
import secrets
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

USER_FIELDS = ("firstName", "lastName", "email", "nationality", "phone", "password")
DISH_REQUIRED_FIELDS = ("name", "description")
DISH_TIME_FIELDS = ("prepTime", "cookTime")
DISH_UPDATABLE_FIELDS = (
    "name", "description", "quickPrep", "prepTime", "cookTime", "imageUrl", "steps", "calories",
)

DUPLICATE_EMAIL_ERROR = "El email ya está registrado"


class MockState:
    """In-memory users, sessions and dishes."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.users: Dict[str, Dict[str, Any]] = {}  # email -> user record (with password)
        self.sessions: Dict[str, int] = {}  # session token -> user id
        self.dishes: Dict[int, Dict[str, Any]] = {}  # dish id -> dish
        self._user_ids = itertools.count(1)
        self._dish_ids = itertools.count(1)

    def next_user_id(self) -> int:
        return next(self._user_ids)

    def next_dish_id(self) -> int:
        return next(self._dish_ids)

    def seed_user(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Register a user directly, bypassing HTTP."""
        user = {"id": self.next_user_id()}
        user.update({name: payload[name] for name in USER_FIELDS})
        self.users[user["email"]] = user
        return user


def _public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in user.items() if key != "password"}


def _missing(payload: Dict[str, Any], fields) -> bool:
    return any(payload.get(name) in (None, "") for name in fields)


def create_mock_api_app(state: Optional[MockState] = None) -> Flask:
    """Create and configure the mock NutriApp Flask app."""
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.json.ensure_ascii = False
    state = state or MockState()
    app.extensions["nutriapp_mock_state"] = state

    def _current_user_id() -> Optional[int]:
        token = request.cookies.get("session")
        return state.sessions.get(token) if token else None

    def _unauthorized():
        return jsonify({"error": "Unauthorized"}), 401

    @app.route("/", methods=["GET"])
    def home():
        return '<h1 data-testid="home-title">Welcome to NutriApp!</h1>', 200

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"}), 200

    @app.route("/api/register", methods=["POST"])
    def register():
        payload = request.get_json(silent=True) or {}
        if _missing(payload, USER_FIELDS):
            return jsonify({"error": "Missing fields"}), 400
        if payload["email"] in state.users:
            return jsonify({"error": DUPLICATE_EMAIL_ERROR}), 409

        user = state.seed_user(payload)
        return jsonify({"user": _public_user(user)}), 200

    @app.route("/api/login", methods=["POST"])
    def login():
        payload = request.get_json(silent=True) or {}
        if _missing(payload, ("email", "password")):
            return jsonify({"error": "Missing fields"}), 400

        user = state.users.get(payload["email"])
        if user is None or user["password"] != payload["password"]:
            return jsonify({"error": "Invalid credentials"}), 401

        token = secrets.token_hex(16)
        state.sessions[token] = user["id"]
        response = jsonify({"user": _public_user(user)})
        response.set_cookie("session", token, httponly=True, path="/")
        return response, 200

    @app.route("/api/dishes", methods=["GET"])
    def list_dishes():
        user_id = _current_user_id()
        if user_id is None:
            return _unauthorized()
        dishes = [dish for dish in state.dishes.values() if dish["userId"] == user_id]
        return jsonify({"dishes": dishes}), 200

    @app.route("/api/dishes", methods=["POST"])
    def create_dish():
        user_id = _current_user_id()
        if user_id is None:
            return _unauthorized()

        payload = request.get_json(silent=True) or {}
        quick_prep = bool(payload.get("quickPrep", False))
        required = DISH_REQUIRED_FIELDS if quick_prep else DISH_REQUIRED_FIELDS + DISH_TIME_FIELDS
        if _missing(payload, required):
            return jsonify({"error": "Missing fields"}), 400

        dish = {
            "id": state.next_dish_id(),
            "userId": user_id,
            "name": payload["name"],
            "description": payload["description"],
            "quickPrep": quick_prep,
            "prepTime": payload.get("prepTime"),
            "cookTime": payload.get("cookTime"),
            "imageUrl": payload.get("imageUrl", ""),
            "steps": list(payload.get("steps") or []),
            "calories": payload.get("calories"),
        }
        state.dishes[dish["id"]] = dish
        return jsonify({"dish": dish}), 200

    @app.route("/api/dishes/<int:dish_id>", methods=["GET"])
    def get_dish(dish_id: int):
        user_id = _current_user_id()
        if user_id is None:
            return _unauthorized()
        dish = state.dishes.get(dish_id)
        if dish is None or dish["userId"] != user_id:
            return jsonify({"error": "Dish not found"}), 404
        return jsonify({"dish": dish}), 200

    @app.route("/api/dishes/<int:dish_id>", methods=["PUT"])
    def update_dish(dish_id: int):
        user_id = _current_user_id()
        if user_id is None:
            return _unauthorized()
        dish = state.dishes.get(dish_id)
        if dish is None:
            return jsonify({"error": "Dish not found"}), 404
        if dish["userId"] != user_id:
            return jsonify({"error": "Forbidden"}), 403

        payload = request.get_json(silent=True) or {}
        for name in DISH_UPDATABLE_FIELDS:
            if name in payload:
                dish[name] = payload[name]
        return jsonify({"dish": dish}), 200

    @app.route("/api/dishes/<int:dish_id>", methods=["DELETE"])
    def delete_dish(dish_id: int):
        user_id = _current_user_id()
        if user_id is None:
            return _unauthorized()
        dish = state.dishes.get(dish_id)
        if dish is None:
            return jsonify({"error": "Dish not found"}), 404
        if dish["userId"] != user_id:
            return jsonify({"error": "Forbidden"}), 403
        del state.dishes[dish_id]
        return jsonify({"message": "Dish deleted"}), 200

    return app
