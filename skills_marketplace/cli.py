"""
Command-line interface for the skills marketplace.

Provides tools to:
- List membership plans
- Search SME profiles
- Register a skills development provider or SME from a YAML draft
- Sign in and register administrators
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import load_settings
from .models.plan import plans_for
from .models.registration import RegistrationDraft
from .models.sme_registration import SMERegistrationDraft
from .models.user import Role
from .workflows.accounts import AccountService, AdminRegistration
from .workflows.expert_search import ExpertSearch, SearchFilters
from .workflows.payment_confirmation import PaymentConfirmation
from .workflows.registration_wizard import RegistrationWizard, SMERegistrationWizard
from .api.documents import LocalDocumentStore
from .api.identity import LocalClaimSetter, LocalIdentityProvider
from .api.payments import PaymentGatewayClient

console = Console()
logger = logging.getLogger(__name__)

REGISTRANTS = {
    "sdp": (RegistrationWizard, RegistrationDraft),
    "sme": (SMERegistrationWizard, SMERegistrationDraft),
}


class Services:
    """Providers and services built from the loaded settings."""

    def __init__(self, config_path: Optional[Path] = None):
        self.settings = load_settings(config_path)
        self.documents = LocalDocumentStore(self.settings.data_dir)
        self.identity = LocalIdentityProvider(self.settings.data_dir, self.documents)
        self.claim_setter = LocalClaimSetter(self.identity, self.settings.admin_registration_key)
        self.accounts = AccountService(self.identity, self.claim_setter, self.settings)

    def payment_confirmation(self) -> PaymentConfirmation:
        gateway = None
        if self.settings.payment_configured:
            gateway = PaymentGatewayClient(
                self.settings.payment_gateway_url,
                self.settings.payment_gateway_key,
            )
        return PaymentConfirmation(gateway, self.settings)


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


@click.group()
@click.option("--config", "config_path", type=click.Path(exists=True, path_type=Path),
              help="YAML settings file (defaults to $MARKETPLACE_CONFIG)")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, config_path, verbose):
    """Skills marketplace: SDP and SME registration, plans and expert search."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    ctx.obj = Services(config_path)


# === Plans ===

@main.command()
@click.option("--role", type=click.Choice(["sdp", "sme"]), default="sdp", show_default=True)
def plans(role: str):
    """List the membership plans for providers or SMEs."""
    table = Table(title=f"{role.upper()} Membership Plans")
    table.add_column("Key")
    table.add_column("Plan")
    table.add_column("Price", justify="right")
    table.add_column("Billing")
    table.add_column("Duration", justify="right")

    for plan in plans_for(role).values():
        table.add_row(
            plan.key.value,
            plan.label,
            plan.display_amount,
            plan.billing_type.value,
            f"{plan.duration_days} days" if plan.duration_days else "-",
        )
    console.print(table)


# === Search ===

@main.command()
@click.argument("query", required=False, default="")
@click.option("--role", help="Role contains this text")
@click.option("--sector", help="Exact sector")
@click.option("--location", help="Exact location")
@click.option("--availability", type=click.Choice(["Available", "Busy", "Offline", "Away"]))
@click.option("--specialization", help="Specialization contains this text")
@click.pass_obj
def search(services: Services, query, role, sector, location, availability, specialization):
    """Search SME profiles by name, specialization or role."""
    filters = SearchFilters(
        role=role,
        sector=sector,
        location=location,
        availability=availability,
        specialization=specialization,
    )
    with ExpertSearch() as engine:
        engine.follow(services.documents.subscribe({"role": Role.SME.value}))
        engine.set_filters(filters)
        results = engine.set_query(query)
        total = len(engine.candidates)

    if not results:
        console.print(f"No experts found ({total} profiles searched).")
        return

    table = Table(title=f"{len(results)} of {total} experts")
    table.add_column("Name")
    table.add_column("Roles")
    table.add_column("Location")
    table.add_column("Availability")
    table.add_column("Rating", justify="right")

    for profile in results:
        table.add_row(
            profile.name,
            ", ".join(profile.roles),
            profile.location,
            profile.availability.value,
            f"{profile.rating_display} ({profile.reviews_display})",
        )
    console.print(table)


# === Registration ===

@main.command()
@click.argument("draft_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--plan", "plan_key", type=click.Choice(["free", "monthly", "annual"]),
              help="Plan to select (overrides payment_plan in the draft)")
@click.option("--role", type=click.Choice(["sdp", "sme"]), default="sdp", show_default=True,
              help="Register a skills development provider or a subject matter expert")
@click.pass_obj
def register(services: Services, draft_file: Path, plan_key: Optional[str], role: str):
    """
    Register a skills development provider or SME from a YAML draft.

    The draft is walked through every wizard step; the first failing step
    is reported with its offending fields.
    """
    with open(draft_file) as f:
        data = yaml.safe_load(f) or {}

    wizard_type, draft_type = REGISTRANTS[role]
    try:
        draft = draft_type.from_dict(data)
    except (TypeError, ValueError) as e:
        _fail(f"Invalid draft: {e}")

    wizard = wizard_type(services.accounts, services.payment_confirmation(), draft=draft)
    if plan_key:
        wizard.select_plan(plan_key)

    while not wizard.is_final_step:
        title = wizard.title
        if not wizard.advance():
            _report_wizard_error(wizard, title)
        console.print(f"[green]✓[/green] {title}")

    if wizard.draft.payment_plan.value and not wizard.confirm_payment():
        _report_wizard_error(wizard, wizard.title)

    final_title = wizard.title
    if not wizard.advance():
        _report_wizard_error(wizard, final_title)

    console.print(f"[green]✓[/green] {final_title}")
    console.print()
    console.print("[bold]Registration successful![/bold]")
    console.print(f"  Account ID: {wizard.submission.account_id}")
    console.print(f"  Next:       {wizard.submission.destination}")


def _report_wizard_error(wizard: RegistrationWizard, title: str) -> None:
    error = wizard.error
    console.print(f"[red]✗[/red] {title}: {error.message}")
    for field_id, message in wizard.field_errors.to_dict().items():
        console.print(f"    {field_id}: {message}")
    sys.exit(1)


# === Accounts ===

@main.command()
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True)
@click.pass_obj
def login(services: Services, email: str, password: str):
    """Sign in to the marketplace."""
    user, result = services.accounts.sign_in(email, password)
    if user is None:
        _fail(result)

    console.print(f"Welcome back, {user.display_name}!")
    console.print(f"  Role:        {user.role.value}")
    console.print(f"  Verified:    {'yes' if user.verified else 'no'}")
    console.print(f"  Dashboard:   {result}")


@main.command("register-admin")
@click.option("--first-name", prompt=True)
@click.option("--last-name", prompt=True)
@click.option("--email", prompt=True)
@click.option("--phone", default="")
@click.option("--password", prompt=True, hide_input=True)
@click.option("--confirm-password", prompt=True, hide_input=True)
@click.option("--admin-key", prompt=True, hide_input=True)
@click.pass_obj
def register_admin(services: Services, first_name, last_name, email, phone,
                   password, confirm_password, admin_key):
    """Register a platform administrator."""
    form = AdminRegistration(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password=password,
        confirm_password=confirm_password,
        admin_key=admin_key,
        phone=phone,
    )
    user, result = services.accounts.register_admin(form)
    if user is None:
        _fail(result)

    console.print("[bold]Admin account created.[/bold]")
    console.print(f"  Account ID: {user.id}")
    console.print(f"  Dashboard:  {result}")
    if not services.identity.get_claims(user.id).get("admin"):
        console.print("[yellow]Admin claims could not be set; ask an administrator to grant them.[/yellow]")


if __name__ == "__main__":
    main()
