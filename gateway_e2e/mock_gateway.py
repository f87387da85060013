"""Mock API gateway for offline testing of the E2E fixtures.

This mock server implements the gateway endpoints the fixtures depend on:
- POST /api/v1/auth/login: exchange email/password for a bearer token
- GET /api/v1/auth/me: profile for a bearer token
- POST /api/v1/ldap/users: provision a directory user (admin only)
- DELETE /api/v1/ldap/users/<uid>: remove a directory user (admin only)
- GET /health: liveness
- GET|DELETE /api/v1/admin/error-logs: requests that ended in 4xx/5xx

Newly provisioned users can be made to fail their first logins to mimic
directory propagation delay, and individual deletes can be forced to fail.
"""
from __future__ import annotations

import secrets
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Set, Tuple

from flask import Flask, jsonify, request
from werkzeug.serving import make_server

from gateway_e2e.test_users import TEST_USERS

# Session tokens are valid for one hour
TOKEN_LIFETIME = timedelta(hours=1)

ERROR_LOGS_ROUTE = "/api/v1/admin/error-logs"


@dataclass
class MockUser:
    id: str
    email: str
    password: str
    name: str
    roles: List[str]
    dn: Optional[str] = None
    pending_login_failures: int = 0

    def profile(self) -> Dict[str, Any]:
        return {"id": self.id, "email": self.email, "name": self.name, "roles": list(self.roles)}


def default_users() -> List[MockUser]:
    """Accounts matching the named credentials (except `invalid`)."""
    return [
        MockUser("1", TEST_USERS["admin"].email, TEST_USERS["admin"].password, "Admin User", ["admin", "user"]),
        MockUser("2", TEST_USERS["user"].email, TEST_USERS["user"].password, "Regular User", ["user"]),
        MockUser("3", TEST_USERS["test"].email, TEST_USERS["test"].password, "Test User", ["user", "tester"]),
    ]


@dataclass
class MockGatewayState:
    """In-memory state of one mock gateway instance."""

    users: Dict[str, MockUser] = field(default_factory=dict)  # email -> user
    tokens: Dict[str, str] = field(default_factory=dict)  # token -> email
    login_calls: Counter = field(default_factory=Counter)  # email -> attempts
    error_logs: List[Dict[str, Any]] = field(default_factory=list)
    # Failed logins every newly provisioned user goes through first
    propagation_failures: int = 0
    omit_token_for: Set[str] = field(default_factory=set)
    fail_deletes: Set[str] = field(default_factory=set)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def with_defaults(cls) -> "MockGatewayState":
        state = cls()
        for user in default_users():
            state.users[user.email] = user
        return state

    def find_by_uid(self, uid: str) -> Optional[MockUser]:
        for user in self.users.values():
            if user.id == uid:
                return user
        return None

    def user_for_token(self, token: str) -> Optional[MockUser]:
        email = self.tokens.get(token)
        return self.users.get(email) if email else None

    def reset(self) -> None:
        with self.lock:
            self.users.clear()
            self.tokens.clear()
            self.login_calls.clear()
            self.error_logs.clear()
            self.omit_token_for.clear()
            self.fail_deletes.clear()
            self.propagation_failures = 0
            for user in default_users():
                self.users[user.email] = user


def _error(message: str, status: int) -> Tuple[Any, int]:
    return jsonify({"error": {"message": message, "status": status}}), status


def create_mock_gateway_app(state: Optional[MockGatewayState] = None) -> Flask:
    """Create and configure the mock gateway Flask app."""
    app = Flask(__name__)
    app.config['TESTING'] = True
    state = state or MockGatewayState.with_defaults()
    app.config['GATEWAY_STATE'] = state

    def _bearer_user() -> Optional[MockUser]:
        header = request.headers.get('Authorization', '')
        if not header.startswith('Bearer '):
            return None
        return state.user_for_token(header[len('Bearer '):])

    def _require_admin() -> Optional[Tuple[Any, int]]:
        user = _bearer_user()
        if user is None:
            return _error("Authentication required", 401)
        if 'admin' not in user.roles:
            return _error("Admin role required", 403)
        return None

    @app.after_request
    def record_error(response):
        if response.status_code >= 400 and request.path != ERROR_LOGS_ROUTE:
            with state.lock:
                state.error_logs.append({
                    "method": request.method,
                    "path": request.path,
                    "status": response.status_code,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                })
        return response

    @app.errorhandler(404)
    def not_found(_exc):
        return _error("API endpoint not found", 404)

    @app.errorhandler(405)
    def method_not_allowed(_exc):
        return _error("Method not allowed", 405)

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({"status": "healthy"}), 200

    @app.route('/api/v1/auth/login', methods=['POST'])
    def login():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return _error("Invalid JSON payload", 400)
        email = data.get('email')
        password = data.get('password')
        if not email or not password:
            return _error("email and password are required", 400)
        if '@' not in email:
            return _error("Invalid email format", 400)

        with state.lock:
            state.login_calls[email] += 1
            user = state.users.get(email)
            if user is None or user.password != password:
                return _error("Invalid credentials", 401)
            if user.pending_login_failures > 0:
                user.pending_login_failures -= 1
                return _error("Invalid credentials", 401)
            if email in state.omit_token_for:
                return jsonify({"user": user.profile()}), 200
            token = secrets.token_urlsafe(24)
            state.tokens[token] = email

        return jsonify({
            "token": token,
            "expires_at": (datetime.now(timezone.utc) + TOKEN_LIFETIME).isoformat(),
            "user": user.profile(),
        }), 200

    @app.route('/api/v1/auth/me', methods=['GET'])
    def me():
        user = _bearer_user()
        if user is None:
            return _error("Invalid or missing token", 401)
        return jsonify(user.profile()), 200

    @app.route('/api/v1/ldap/users', methods=['POST'])
    def create_ldap_user():
        denied = _require_admin()
        if denied:
            return denied

        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return _error("Invalid JSON payload", 400)
        missing = [k for k in ('uid', 'email', 'password') if not data.get(k)]
        if missing:
            return _error(f"Missing fields: {', '.join(missing)}", 400)

        with state.lock:
            if data['email'] in state.users or state.find_by_uid(data['uid']):
                return _error(f"User {data['uid']} already exists", 409)
            user = MockUser(
                id=data['uid'],
                email=data['email'],
                password=data['password'],
                name=data.get('displayName') or data['uid'],
                roles=list(data.get('groups') or []),
                dn=f"uid={data['uid']},ou=users,dc=ugjb,dc=com",
                pending_login_failures=state.propagation_failures,
            )
            state.users[user.email] = user

        return jsonify({"uid": user.id, "dn": user.dn, "email": user.email}), 201

    @app.route('/api/v1/ldap/users/<uid>', methods=['DELETE'])
    def delete_ldap_user(uid: str):
        denied = _require_admin()
        if denied:
            return denied

        with state.lock:
            if uid in state.fail_deletes:
                return _error(f"Directory unavailable while deleting {uid}", 500)
            user = state.find_by_uid(uid)
            if user is None:
                return _error(f"User {uid} not found", 404)
            del state.users[user.email]
            for token in [t for t, email in state.tokens.items() if email == user.email]:
                del state.tokens[token]

        return jsonify({"deleted": uid}), 200

    @app.route(ERROR_LOGS_ROUTE, methods=['GET'])
    def list_error_logs():
        with state.lock:
            return jsonify(list(state.error_logs)), 200

    @app.route(ERROR_LOGS_ROUTE, methods=['DELETE'])
    def clear_error_logs():
        with state.lock:
            cleared = len(state.error_logs)
            state.error_logs.clear()
        return jsonify({"cleared": cleared}), 200

    return app


class MockGatewayServer:
    """Runs the mock gateway in a background thread on an ephemeral port."""

    def __init__(self, host: str = '127.0.0.1', port: int = 0, state: Optional[MockGatewayState] = None):
        self.host = host
        self.state = state or MockGatewayState.with_defaults()
        self.app = create_mock_gateway_app(self.state)
        self.server = make_server(host, port, self.app, threaded=True)
        self.port = self.server.server_port
        self.thread: Optional[threading.Thread] = None

    def start(self) -> "MockGatewayServer":
        # The socket is bound in __init__, so requests queue until the loop runs
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()
        return self

    def stop(self) -> None:
        self.server.shutdown()
        if self.thread:
            self.thread.join(timeout=5)
        self.server.server_close()

    def __enter__(self) -> "MockGatewayServer":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"
