"""
Flask CLI commands for local setup and diagnostics.

Commands:
- flask init-db: Create every table
- flask create-user: Create a tenant membership (tenant and user created on demand)
- flask check-packaging: Reconcile packaging balances against their movements
"""

import re

import click
from sqlalchemy.exc import SQLAlchemyError

from ceasa.database import create_schema, get_session
from ceasa.models import AppUser, Tenant, UserTenant, UserRole
from ceasa.services import packaging_service


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables."""
        create_schema()
        click.echo(click.style('Tabelas criadas.', fg='green'))

    @app.cli.command('create-user')
    @click.option('--tenant', 'tenant_slug', required=True, help='Tenant slug (created if missing)')
    @click.option('--email', prompt=True, help='User email address')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='User password')
    @click.option('--role', type=click.Choice([r.value for r in UserRole]), default=UserRole.OWNER.value,
                  show_default=True)
    @click.option('--finance-profile/--no-finance-profile', default=False, help='Grant the finance profile')
    def create_user(tenant_slug, email, password, role, finance_profile):
        """Create a user with a role in a tenant."""
        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, email):
            click.echo(click.style('Email inválido. Use o formato user@example.com', fg='red'))
            return

        if len(password) < 6:
            click.echo(click.style('A senha deve ter pelo menos 6 caracteres.', fg='red'))
            return

        db_session = get_session()
        try:
            tenant = db_session.query(Tenant).filter_by(slug=tenant_slug).first()
            if not tenant:
                tenant = Tenant(slug=tenant_slug, name=tenant_slug)
                db_session.add(tenant)
                db_session.flush()

            user = db_session.query(AppUser).filter_by(email=email).first()
            if not user:
                user = AppUser(email=email)
                user.set_password(password)
                db_session.add(user)
                db_session.flush()

            membership = db_session.query(UserTenant).filter_by(user_id=user.id, tenant_id=tenant.id).first()
            if membership:
                click.echo(click.style(f'{email} já pertence a {tenant_slug}.', fg='red'))
                db_session.rollback()
                return

            db_session.add(UserTenant(user_id=user.id, tenant_id=tenant.id, role=role,
                                      finance_profile=finance_profile))
            db_session.commit()

            click.echo(click.style('Usuário criado.', fg='green', bold=True))
            click.echo(f'   Tenant: {tenant.slug} (id {tenant.id})')
            click.echo(f'   Email: {email}  Role: {role}  Financeiro: {finance_profile}')

        except SQLAlchemyError as e:
            db_session.rollback()
            click.echo(click.style(f'Erro ao criar usuário: {e}', fg='red'))

    @app.cli.command('check-packaging')
    @click.option('--tenant-id', type=int, default=None, help='Only this tenant')
    def check_packaging(tenant_id):
        """Compare packaging balances with the sum of their movements."""
        db_session = get_session()
        query = db_session.query(Tenant.id).order_by(Tenant.id)
        if tenant_id:
            query = query.filter(Tenant.id == tenant_id)

        mismatches = 0
        for (current_tenant_id,) in query.all():
            for row in packaging_service.reconcile_tenant(db_session, current_tenant_id):
                if row['consistent']:
                    continue
                mismatches += 1
                click.echo(click.style(
                    f"tenant={current_tenant_id} store={row['store_id']} packaging={row['packaging_type_id']}: "
                    f"saldo {row['quantity_balance']}/{row['deposit_balance']} != "
                    f"movimentos {row['movement_quantity']}/{row['movement_deposit']}",
                    fg='red'))

        if mismatches:
            raise click.ClickException(f'{mismatches} saldo(s) divergente(s)')
        click.echo(click.style('Saldos de embalagem consistentes.', fg='green'))
