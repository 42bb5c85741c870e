"""
CLI tools for managing SkyExplorer users.
Works against the configured provider (database or xml), with per-command
overrides for the database URL, XML file and provider.
"""

import argparse
import getpass
import os
from typing import List, Optional

from skyexplorer_auth.auth.errors import IdentityConflictError
from skyexplorer_auth.auth.models import ADMIN_ROLE
from skyexplorer_auth.auth.security import PasswordEncoder, SecurityHardening
from skyexplorer_auth.core.factory import AuthComponents, build_components
from skyexplorer_auth.utils.config import ENV_PREFIX, AuthConfig
from skyexplorer_auth.utils.display import (
    print_banner,
    print_config_summary,
    print_users_table,
    show_security_banner,
)


def _to_dsn(db_url: str) -> str:
    """Raw file paths become SQLite DSNs."""
    if "://" not in db_url:
        return f"sqlite:///{db_url}"
    return db_url


def _load_config(args) -> AuthConfig:
    """Global environment plus the command-line overrides."""
    env = dict(os.environ)

    if getattr(args, "db_url", None):
        env[f"{ENV_PREFIX}DATABASE_URL"] = _to_dsn(args.db_url)
    if getattr(args, "xml_file", None):
        env[f"{ENV_PREFIX}XML_FILE"] = args.xml_file
    if getattr(args, "provider", None):
        env[f"{ENV_PREFIX}PROVIDER"] = args.provider

    return AuthConfig(env=env)


def _components(args) -> AuthComponents:
    return build_components(_load_config(args))


def _read_password(given: Optional[str], confirm: bool = True) -> Optional[str]:
    if given:
        return given

    password = getpass.getpass("Password: ")
    if confirm and password != getpass.getpass("Confirm password: "):
        print("❌ Passwords do not match.")
        return None
    return password


def handle_user_management(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for CLI management commands.
    Parses arguments and dispatches to the correct command function.
    """
    parser = argparse.ArgumentParser(
        prog="skyexplorer-auth", description="SkyExplorer Auth - Administrative CLI"
    )
    subparsers = parser.add_subparsers(dest="command", help="Management commands")

    setup_cli_parser(subparsers)

    args = parser.parse_args(argv)

    if hasattr(args, "func"):
        return args.func(args)

    parser.print_help()
    return 1


# ========================================
# Commands
# ========================================


def init_command(args):
    """Create the store (tables or XML file) and bootstrap the admin user."""
    cfg = _load_config(args)
    print_banner()
    print_config_summary(cfg.as_dict())

    components = build_components(cfg)
    print(f"✅ {components.provider.get_name()} store initialized.")

    username = args.username or cfg.ADMIN_USERNAME
    email = args.email or cfg.ADMIN_EMAIL
    password = args.password or cfg.ADMIN_PASSWORD
    generated = not password
    if generated:
        password = SecurityHardening.generate_random_password()

    admin, created = components.service.ensure_admin(username, email, password)
    if not created:
        print(f"✅ Admin user '{admin.username}' already exists (roles: {','.join(sorted(admin.roles))}).")
        return 0

    if generated:
        show_security_banner(admin.username, password)
    else:
        print(f"✅ Admin user '{admin.username}' created (roles: ADMIN,USER)")
    return 0


def add_user_command(args):
    """Register a new user, optionally with extra roles."""
    components = _components(args)

    password = _read_password(args.password)
    if password is None:
        return 1

    try:
        user = components.service.register(
            args.username,
            args.email,
            password,
            first_name=args.first_name or "",
            last_name=args.last_name or "",
            performed_by="cli",
        )
    except IdentityConflictError as e:
        print(f"❌ Failed to create user: {e}")
        return 1

    extra_roles = [r.upper() for r in (args.role or [])]
    if args.admin:
        extra_roles.append(ADMIN_ROLE)
    for role in extra_roles:
        user = components.service.add_role(user, role, performed_by="cli")

    print(f"✅ User '{user.username}' created (id {user.id}, roles: {','.join(sorted(user.roles))})")
    return 0


def list_users_command(args):
    users = _components(args).service.list_users()
    if not users:
        print("No users found.")
        return 0

    print_users_table(users)
    return 0


def delete_user_command(args):
    """Permanently delete a user."""
    components = _components(args)

    if not args.yes:
        confirm = input(f"Are you sure you want to delete user '{args.username}'? (y/N): ")
        if confirm.lower() != "y":
            print("Operation cancelled.")
            return 0

    if components.service.delete_user(args.username, performed_by="cli"):
        print(f"✅ User '{args.username}' deleted.")
        return 0

    print(f"❌ User '{args.username}' not found.")
    return 1


def _role_command(args, grant: bool) -> int:
    service = _components(args).service
    role = args.role.upper()

    user = service.get_user_by_username(args.username)
    if user is None:
        print(f"❌ User '{args.username}' not found.")
        return 1

    if grant:
        if user.has_role(role):
            print(f"User '{user.username}' already has role {role}.")
            return 0
        user = service.add_role(user, role, performed_by="cli")
        print(f"✅ Role {role} granted to '{user.username}'.")
    else:
        if not user.has_role(role):
            print(f"User '{user.username}' does not have role {role}.")
            return 0
        user = service.remove_role(user, role, performed_by="cli")
        print(f"✅ Role {role} removed from '{user.username}'.")

    print(f"   Roles now: {','.join(sorted(user.roles)) or '(none)'}")
    return 0


def add_role_command(args):
    return _role_command(args, grant=True)


def remove_role_command(args):
    return _role_command(args, grant=False)


def sync_user_command(args):
    """Mirror one XML user into the database."""
    components = _components(args)

    if not components.synchronizer.enabled:
        print("❌ Synchronization only runs with the xml provider (use --provider xml).")
        return 1

    mirrored = components.synchronizer.synchronize_user(args.username)
    if mirrored is None:
        print(f"❌ User '{args.username}' not found in {components.config.XML_FILE}.")
        return 1

    print(
        f"✅ '{mirrored.username}' synchronized to database "
        f"(id {mirrored.id}, roles: {','.join(sorted(mirrored.roles))})"
    )
    return 0


def hash_password_command(args):
    """Print a bcrypt hash for a password, e.g. for hand-editing users.xml."""
    password = _read_password(args.password, confirm=False)
    encoder = PasswordEncoder(rounds=args.rounds)

    encoded = encoder.encode(password)
    print(f"Password hash: {encoded}")
    print(f"Verification: {'OK' if encoder.matches(password, encoded) else 'FAILED'}")
    return 0


def serve_command(args):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from skyexplorer_auth.api.app import create_app

    cfg = _load_config(args)
    print_banner()
    print_config_summary(cfg.as_dict())

    uvicorn.run(create_app(build_components(cfg)), host=args.host, port=args.port)
    return 0


# ========================================
# Parser
# ========================================


def _store_options(parser):
    parser.add_argument("--db-url", help="Database URL or SQLite file path")
    parser.add_argument("--xml-file", help="Path to users.xml")
    parser.add_argument("--provider", choices=["database", "xml"], help="Override AUTH_PROVIDER")


def setup_cli_parser(subparsers):
    """Setup CLI argument parsers for all commands."""

    # init
    p_init = subparsers.add_parser("init", help="Create the user store and the admin account")
    p_init.add_argument("--username", help="Admin username (default: ADMIN_USERNAME)")
    p_init.add_argument("--email", help="Admin email (default: ADMIN_EMAIL)")
    p_init.add_argument("--password", help="Admin password (generated if omitted)")
    _store_options(p_init)
    p_init.set_defaults(func=init_command)

    # add-user
    p_add = subparsers.add_parser("add-user", help="Add a new user")
    p_add.add_argument("username", help="Username")
    p_add.add_argument("--email", required=True, help="User email")
    p_add.add_argument("--password", help="Password (will prompt if omitted)")
    p_add.add_argument("--first-name", help="First name")
    p_add.add_argument("--last-name", help="Last name")
    p_add.add_argument("--admin", action="store_true", help="Also grant ADMIN")
    p_add.add_argument("--role", action="append", help="Extra role (repeatable)")
    _store_options(p_add)
    p_add.set_defaults(func=add_user_command)

    # list-users
    p_list = subparsers.add_parser("list-users", help="List all users")
    _store_options(p_list)
    p_list.set_defaults(func=list_users_command)

    # delete-user
    p_del = subparsers.add_parser("delete-user", help="Delete a user")
    p_del.add_argument("username", help="Username")
    p_del.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")
    _store_options(p_del)
    p_del.set_defaults(func=delete_user_command)

    # add-role / remove-role
    p_grant = subparsers.add_parser("add-role", help="Grant a role to a user")
    p_grant.add_argument("username", help="Username")
    p_grant.add_argument("role", help="Role label (e.g. ADMIN)")
    _store_options(p_grant)
    p_grant.set_defaults(func=add_role_command)

    p_revoke = subparsers.add_parser("remove-role", help="Revoke a role from a user")
    p_revoke.add_argument("username", help="Username")
    p_revoke.add_argument("role", help="Role label (e.g. ADMIN)")
    _store_options(p_revoke)
    p_revoke.set_defaults(func=remove_role_command)

    # sync-user
    p_sync = subparsers.add_parser("sync-user", help="Mirror an XML user into the database")
    p_sync.add_argument("username", help="Username")
    _store_options(p_sync)
    p_sync.set_defaults(func=sync_user_command)

    # hash-password
    p_hash = subparsers.add_parser("hash-password", help="Generate a bcrypt password hash")
    p_hash.add_argument("password", nargs="?", help="Password (will prompt if omitted)")
    p_hash.add_argument("--rounds", type=int, default=10, help="bcrypt cost factor")
    p_hash.set_defaults(func=hash_password_command)

    # serve
    p_serve = subparsers.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    _store_options(p_serve)
    p_serve.set_defaults(func=serve_command)
