import argparse
import logging
import os
import sys
from pathlib import Path

from staffauth.adapters.sqlite.migrator import SQLiteMigrator
from staffauth.app_shell.context import ServiceContext
from staffauth.components.invitation import CreateInvitationInput, run_create
from staffauth.components.mass_reset import ResetAllInput, run_reset_all
from staffauth.core.services.settings_cache import SettingsCache, generate_install_secret
from staffauth.domain.entities import SETTING_INSTALL_SECRET
from staffauth.rules.loader import load_rules

logger = logging.getLogger("staffauth.cli")

DEFAULT_DATA_DIR = os.environ.get("STAFFAUTH_DATA_DIR", "./data")
DEFAULT_RULES_PATH = os.environ.get("STAFFAUTH_RULES_PATH", "auth_rules.yaml")


def get_context(args: argparse.Namespace) -> ServiceContext:
    rules_path = Path(args.rules)
    if not rules_path.exists():
        logger.error("Rules file %s not found.", rules_path)
        sys.exit(1)

    rules = load_rules(rules_path)
    return ServiceContext.create(args.db, rules)


def handle_migrate(args: argparse.Namespace) -> None:
    Path(args.db).parent.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(args.db).run_migrations()
    print(f"Applied {len(applied)} migration(s).")


def handle_invite(ctx: ServiceContext, args: argparse.Namespace) -> None:
    creator = ctx.user_repo.get_by_email(args.creator_email.strip().lower())
    if not creator:
        logger.error(
            "Creator %s not found. Invoke with a valid owner or admin email.", args.creator_email
        )
        sys.exit(1)

    result = run_create(
        CreateInvitationInput(
            creator=creator,
            email=args.email,
            role=args.role,
            days_valid=args.days or ctx.rules.invitations.days_valid,
        ),
        ctx.invite_repo,
        ctx.user_repo,
        ctx.auth_adapter,
        ctx.clock,
    )
    if not result.success or not result.token:
        logger.error("Invite failed: %s", result.error)
        sys.exit(1)

    link = ctx.rules.invitations.accept_url_template.format(
        admin_url=ctx.rules.site.admin_url.rstrip("/"), token=result.token
    )
    print(f"Invite created for {args.email} with role '{args.role}'.")
    print(f"Token: {result.token}")
    print(f"Link: {link}")


def handle_reset_all(ctx: ServiceContext) -> None:
    cache = SettingsCache.load(ctx.settings_repo)
    result = run_reset_all(
        ResetAllInput(internal=True),
        ctx.user_repo,
        ctx.codec,
        cache.install_secret,
        ctx.mailer,
        ctx.mail_settings,
        ctx.mass_reset_policy,
        ctx.clock,
    )
    print(
        f"Locked {result.locked_count} accounts, revoked {result.sessions_revoked} sessions, "
        f"sent {result.notified} reset emails ({result.notify_failed} failed)."
    )


def handle_rotate_secret(ctx: ServiceContext) -> None:
    ctx.settings_repo.set(
        SETTING_INSTALL_SECRET, generate_install_secret(), ctx.clock.now_utc()
    )
    print("Install secret rotated. Outstanding reset links stop working once the server restarts.")


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Staff auth operator CLI")
    parser.add_argument(
        "--db", default=f"{DEFAULT_DATA_DIR}/staffauth.db", help="SQLite database path"
    )
    parser.add_argument("--rules", default=DEFAULT_RULES_PATH, help="Rules YAML path")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # invite
    invite_parser = subparsers.add_parser("invite", help="Create an invitation")
    invite_parser.add_argument("email", help="Address to invite")
    invite_parser.add_argument(
        "role", choices=["admin", "editor", "author", "contributor"], help="Role to assign"
    )
    invite_parser.add_argument(
        "--creator-email", required=True, help="Email of the owner or admin creating the invite"
    )
    invite_parser.add_argument("--days", type=int, default=None, help="Days the invite stays valid")

    # reset-all-passwords
    subparsers.add_parser(
        "reset-all-passwords", help="Lock every account and mail reset links to privileged staff"
    )

    # rotate-secret
    subparsers.add_parser("rotate-secret", help="Replace the install secret")

    args = parser.parse_args(argv)

    if args.command == "migrate":
        handle_migrate(args)
        return

    ctx = get_context(args)
    Path(args.db).parent.mkdir(parents=True, exist_ok=True)
    SQLiteMigrator(args.db).run_migrations()

    if args.command == "invite":
        handle_invite(ctx, args)
    elif args.command == "reset-all-passwords":
        handle_reset_all(ctx)
    elif args.command == "rotate-secret":
        handle_rotate_secret(ctx)


if __name__ == "__main__":
    main()
