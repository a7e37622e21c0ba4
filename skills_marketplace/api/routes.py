"""
Flask REST API for the skills marketplace.

This module provides HTTP endpoints for:
- Listing membership plans
- Driving SDP and SME registration wizards held in server-side sessions
- Searching SME profiles
- Signing in and registering administrators

To run the server:
    python -m skills_marketplace.api.routes

Or with Flask:
    FLASK_APP=skills_marketplace.api.routes:create_app flask run
"""

import logging
import os
import uuid
from typing import Optional

from flask import Flask, request, jsonify, g

from .. import __version__
from ..config import Settings, load_settings
from ..errors import CredentialMismatchError, ErrorKind, MarketplaceError, classify
from ..models.plan import plans_for
from ..models.registration import (
    GOAL_OPTIONS,
    ORGANIZATION_TYPES,
    OTHER,
    SERVICE_TYPES,
    SETA_SECTORS,
    RegistrationDraft,
)
from ..models.sme_registration import (
    EXPERIENCE_LEVELS,
    LANGUAGE_PROFICIENCY,
    LOCATIONS,
    QUALIFICATION_LEVELS,
    SME_ROLES,
    SPECIALIZATIONS,
    SMERegistrationDraft,
)
from ..models.user import Role
from ..workflows.accounts import AccountService, AdminRegistration
from ..workflows.expert_search import ExpertSearch, SearchFilters
from ..workflows.payment_confirmation import PaymentConfirmation
from ..workflows.registration_wizard import RegistrationWizard, SMERegistrationWizard
from .documents import LocalDocumentStore
from .identity import LocalClaimSetter, LocalIdentityProvider
from .payments import PaymentGatewayClient

logger = logging.getLogger(__name__)

FILTER_PARAMS = ("role", "sector", "location", "availability", "specialization")

# Unfinished registrations kept before the oldest is dropped
MAX_OPEN_REGISTRATIONS = 1000

WIZARD_TYPES = {
    Role.SDP: (RegistrationWizard, RegistrationDraft),
    Role.SME: (SMERegistrationWizard, SMERegistrationDraft),
}


def _error(message: str, kind: ErrorKind = ErrorKind.LOCAL_VALIDATION, **extra):
    body = {"error": message, "kind": kind.value, **extra}
    return jsonify(body), kind.http_status


def create_app(settings: Optional[Settings] = None) -> Flask:
    """Create and configure the Flask application."""
    settings = settings or load_settings()

    app = Flask(__name__)
    app.config["SETTINGS"] = settings
    app.config["MAX_OPEN_REGISTRATIONS"] = MAX_OPEN_REGISTRATIONS

    documents = LocalDocumentStore(settings.data_dir)
    identity = LocalIdentityProvider(settings.data_dir, documents)
    claim_setter = LocalClaimSetter(identity, settings.admin_registration_key)
    accounts = AccountService(identity, claim_setter, settings)

    gateway = None
    if settings.payment_configured:
        gateway = PaymentGatewayClient(settings.payment_gateway_url, settings.payment_gateway_key)

    def _log_checkout_url(url: str) -> None:
        logger.info("Checkout started: %s", url)

    def new_payment_confirmation() -> PaymentConfirmation:
        # The browser redirect happens client-side; the server only logs the URL.
        return PaymentConfirmation(gateway, settings, open_url=_log_checkout_url)

    registrations: dict[str, RegistrationWizard] = {}
    app.extensions["registrations"] = registrations

    @app.before_request
    def init_services():
        g.settings = settings
        g.documents = documents
        g.accounts = accounts

    @app.errorhandler(MarketplaceError)
    def handle_marketplace_error(e: MarketplaceError):
        logger.warning("Request failed (%s): %s", e.kind.value, e.message)
        return _error(e.message, classify(e))

    def _get_wizard(registration_id: str) -> Optional[RegistrationWizard]:
        return registrations.get(registration_id)

    def _store_wizard(wizard: RegistrationWizard) -> str:
        while registrations and len(registrations) >= app.config["MAX_OPEN_REGISTRATIONS"]:
            expired = next(iter(registrations))
            del registrations[expired]
            logger.info("Dropped abandoned registration %s", expired)
        registration_id = uuid.uuid4().hex
        registrations[registration_id] = wizard
        return registration_id

    def _wizard_response(registration_id: str, wizard: RegistrationWizard, status: int = 200):
        return jsonify({"id": registration_id, **wizard.to_dict()}), status

    # === Health Check ===

    @app.route("/health", methods=["GET"])
    def health():
        """Health check endpoint."""
        return jsonify({
            "status": "healthy",
            "version": __version__,
            "payment_gateway": settings.payment_configured,
        })

    # === Plans ===

    @app.route("/api/v1/plans", methods=["GET"])
    def list_plans():
        """
        List membership plans.

        Query params:
            role: ``SDP`` (default) or ``SME``
        """
        try:
            plans = plans_for(request.args.get("role", Role.SDP.value))
        except (KeyError, ValueError):
            return _error(f"No plans for role: {request.args.get('role')}")
        return jsonify({"plans": [plan.to_dict() for plan in plans.values()]})

    # === Registration ===

    @app.route("/api/v1/registration-options", methods=["GET"])
    def registration_options():
        """Choices offered by the registration form."""
        return jsonify({
            "organization_types": ORGANIZATION_TYPES,
            "sectors": SETA_SECTORS + [OTHER],
            "goals": GOAL_OPTIONS + [OTHER],
            "services": SERVICE_TYPES + [OTHER],
            "sme": {
                "roles": SME_ROLES,
                "specializations": SPECIALIZATIONS,
                "sectors": SETA_SECTORS + [OTHER],
                "locations": LOCATIONS,
                "experience_levels": EXPERIENCE_LEVELS,
                "qualifications": QUALIFICATION_LEVELS,
                "language_proficiency": LANGUAGE_PROFICIENCY,
            },
        })

    @app.route("/api/v1/registrations", methods=["POST"])
    def create_registration():
        """
        Start a registration wizard.

        Request body (optional):
            role: ``SDP`` (default) or ``SME``
            plan: Plan id from the pricing page (e.g. ``sdp-monthly``)
            draft: Initial draft fields
        """
        data = request.get_json(silent=True) or {}
        try:
            wizard_type, draft_type = WIZARD_TYPES[Role.parse(data.get("role") or Role.SDP.value)]
        except (KeyError, ValueError):
            return _error(f"Cannot register with role: {data.get('role')}")
        try:
            draft = draft_type.from_dict(data.get("draft") or {})
            wizard = wizard_type(
                accounts,
                new_payment_confirmation(),
                draft=draft,
                pricing_plan_id=data.get("plan"),
            )
        except (TypeError, ValueError) as e:
            return _error(str(e))

        registration_id = _store_wizard(wizard)
        return _wizard_response(registration_id, wizard, 201)

    @app.route("/api/v1/registrations/<registration_id>", methods=["GET"])
    def get_registration(registration_id: str):
        """Get a registration wizard's current state."""
        wizard = _get_wizard(registration_id)
        if wizard is None:
            return jsonify({"error": f"Registration not found: {registration_id}"}), 404
        return _wizard_response(registration_id, wizard)

    @app.route("/api/v1/registrations/<registration_id>", methods=["PATCH"])
    def update_registration(registration_id: str):
        """
        Apply draft edits.

        Request body: draft fields to change, e.g. ``{"sectors": ["CETA"]}``.
        """
        wizard = _get_wizard(registration_id)
        if wizard is None:
            return jsonify({"error": f"Registration not found: {registration_id}"}), 404

        data = request.get_json(silent=True)
        if not data:
            return _error("Request body required")

        try:
            wizard.update(**data)
        except (TypeError, ValueError) as e:
            return _error(str(e))
        return _wizard_response(registration_id, wizard)

    @app.route("/api/v1/registrations/<registration_id>/plan", methods=["POST"])
    def select_plan(registration_id: str):
        """
        Select a membership plan.

        Request body:
            plan: ``free``, ``monthly`` or ``annual``
        """
        wizard = _get_wizard(registration_id)
        if wizard is None:
            return jsonify({"error": f"Registration not found: {registration_id}"}), 404

        data = request.get_json(silent=True) or {}
        try:
            wizard.select_plan(data.get("plan", ""))
        except ValueError as e:
            return _error(str(e))
        return _wizard_response(registration_id, wizard)

    @app.route("/api/v1/registrations/<registration_id>/payment", methods=["POST"])
    def confirm_payment(registration_id: str):
        """Confirm payment for the selected plan."""
        wizard = _get_wizard(registration_id)
        if wizard is None:
            return jsonify({"error": f"Registration not found: {registration_id}"}), 404

        receipt = wizard.confirm_payment()
        if receipt is None:
            status = wizard.error.kind.http_status if wizard.error else 400
            return _wizard_response(registration_id, wizard, status)
        return _wizard_response(registration_id, wizard)

    @app.route("/api/v1/registrations/<registration_id>/advance", methods=["POST"])
    def advance_registration(registration_id: str):
        """Validate the current step and move forward (or submit on the last step)."""
        wizard = _get_wizard(registration_id)
        if wizard is None:
            return jsonify({"error": f"Registration not found: {registration_id}"}), 404

        if wizard.advance():
            if wizard.completed:
                # Submitted sessions are not resumable
                registrations.pop(registration_id, None)
            return _wizard_response(registration_id, wizard)
        return _wizard_response(registration_id, wizard, wizard.error.kind.http_status)

    @app.route("/api/v1/registrations/<registration_id>/retreat", methods=["POST"])
    def retreat_registration(registration_id: str):
        """Go back one step."""
        wizard = _get_wizard(registration_id)
        if wizard is None:
            return jsonify({"error": f"Registration not found: {registration_id}"}), 404

        wizard.retreat()
        return _wizard_response(registration_id, wizard)

    # === Experts ===

    @app.route("/api/v1/experts", methods=["GET"])
    def search_experts():
        """
        Search SME profiles.

        Query params:
            q: Free-text query (name, specialization or role)
            role, sector, location, availability, specialization: Filters
        """
        search = ExpertSearch()
        with g.documents.subscribe({"role": Role.SME.value}) as subscription:
            search.follow(subscription)
            search.set_filters(SearchFilters.from_dict(
                {name: request.args.get(name) for name in FILTER_PARAMS}
            ))
            results = search.set_query(request.args.get("q", ""))

        return jsonify({
            "count": len(results),
            "total": len(search.candidates),
            "experts": [p.to_dict() for p in results],
        })

    # === Accounts ===

    @app.route("/api/v1/auth/login", methods=["POST"])
    def login():
        """
        Sign in.

        Request body:
            email: Account email
            password: Account password
        """
        data = request.get_json(silent=True) or {}
        if not data.get("email") or not data.get("password"):
            return _error("email and password are required")

        user, result = g.accounts.sign_in(data["email"], data["password"])
        if user is None:
            raise CredentialMismatchError(result)
        return jsonify({"user": user.to_dict(), "destination": result})

    @app.route("/api/v1/admins", methods=["POST"])
    def register_admin():
        """
        Register a platform administrator.

        Request body:
            first_name, last_name, email, password, confirm_password, admin_key
            phone: (optional)
        """
        data = request.get_json(silent=True)
        if not data:
            return _error("Request body required")

        try:
            form = AdminRegistration(**data)
        except TypeError:
            return _error("Unexpected or missing admin registration fields")

        user, result = g.accounts.register_admin(form)
        if user is None:
            return _error(result)
        return jsonify({"user": user.to_dict(), "destination": result}), 201

    return app


def main():
    """Run the API server."""
    app = create_app()
    port = int(os.environ.get("PORT", 8000))
    debug = os.environ.get("DEBUG", "false").lower() == "true"

    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO)
    logger.info("Starting skills marketplace API on port %d", port)
    app.run(host="0.0.0.0", port=port, debug=debug)


if __name__ == "__main__":
    main()
