import logging
from datetime import timedelta
from uuid import uuid4

from staffauth.components.auth import CreateSessionInput, run_create_session
from staffauth.domain.entities import STAFF_ADMIN_ROLES, Invite, User
from staffauth.domain.errors import DuplicateEmailError, ErrorCode, OwnerExistsError
from staffauth.domain.validation import (
    normalize_email,
    validate_email,
    validate_name,
    validate_password,
)

from .models import (
    AcceptInvitationInput,
    AcceptInvitationOutput,
    CheckInvitationInput,
    CreateInvitationInput,
    CreateInvitationOutput,
    InvitationPolicy,
    InvitationStatusOutput,
)
from .ports import AuthAdapterPort, InviteRepoPort, SessionStorePort, TimePort, UserRepoPort

logger = logging.getLogger(__name__)

_NOT_FOUND = "Invitation not found or already used"
_EMAIL_TAKEN = "A user with this email already exists"
_OWNER_ROLE = "The owner role cannot be granted by invitation"


def run_check(
    inp: CheckInvitationInput,
    invite_repo: InviteRepoPort,
    user_repo: UserRepoPort,
    time: TimePort,
) -> InvitationStatusOutput:
    """Report whether an open invitation exists for an address.

    Looks only at invitations, so the answer says nothing about whether
    the address already has an account.
    """
    errors = validate_email(inp.email)
    if errors:
        return InvitationStatusOutput(
            success=False,
            error=errors[0].message,
            error_code=ErrorCode.VALIDATION,
            errors=errors,
        )

    invite = invite_repo.get_open_by_email(normalize_email(inp.email), time.now_utc())
    if not invite:
        return InvitationStatusOutput(is_invited=False, success=True)

    invited_by = None
    if invite.invited_by_user_id:
        inviter = user_repo.get_by_id(invite.invited_by_user_id)
        invited_by = inviter.display_name if inviter else None

    return InvitationStatusOutput(is_invited=True, invited_by=invited_by, success=True)


def run_accept(
    inp: AcceptInvitationInput,
    invite_repo: InviteRepoPort,
    user_repo: UserRepoPort,
    auth_adapter: AuthAdapterPort,
    session_store: SessionStorePort,
    policy: InvitationPolicy,
    time: TimePort,
) -> AcceptInvitationOutput:
    now = time.now_utc()
    token_hash = auth_adapter.hash_token(inp.token or "")

    # Consumed and expired invitations look exactly like missing ones
    invite = invite_repo.get_open_by_token_hash(token_hash, now)
    if not invite:
        return AcceptInvitationOutput.failed(ErrorCode.NOT_FOUND, _NOT_FOUND)
    if invite.role == "owner":
        logger.warning("Refused invitation %s carrying the owner role", invite.id)
        return AcceptInvitationOutput.failed(ErrorCode.FORBIDDEN, _OWNER_ROLE)

    errors = validate_email(inp.email) + validate_name(inp.name)
    if errors:
        return AcceptInvitationOutput.failed(ErrorCode.VALIDATION, errors[0].message, errors)

    email = normalize_email(inp.email)
    if user_repo.get_by_email(email):
        return AcceptInvitationOutput.failed(ErrorCode.CONFLICT, _EMAIL_TAKEN)

    errors = validate_password(inp.password, email, policy.min_password_length)
    if errors:
        return AcceptInvitationOutput.failed(ErrorCode.VALIDATION, errors[0].message, errors)

    new_user = User(
        id=uuid4(),
        email=email,
        display_name=inp.name.strip(),
        password_hash=auth_adapter.hash_password(inp.password),
        roles=[invite.role],
        status="active",
        created_at=now,
        updated_at=now,
    )

    try:
        redeemed = invite_repo.redeem(token_hash, new_user, now)
    except DuplicateEmailError:
        # Rolled back; the invitation stays redeemable
        return AcceptInvitationOutput.failed(ErrorCode.CONFLICT, _EMAIL_TAKEN)
    except OwnerExistsError:
        return AcceptInvitationOutput.failed(ErrorCode.FORBIDDEN, _OWNER_ROLE)

    if not redeemed:
        # A concurrent redemption won
        return AcceptInvitationOutput.failed(ErrorCode.NOT_FOUND, _NOT_FOUND)

    logger.info("Invitation %s accepted by user %s", redeemed.id, new_user.id)

    auth = run_create_session(
        CreateSessionInput(user=new_user, ttl_minutes=policy.session_ttl_minutes),
        auth_adapter,
        session_store,
        time,
    )
    return AcceptInvitationOutput(
        user=new_user,
        session=auth.session,
        token_raw=auth.token_raw,
        success=True,
    )


def run_create(
    inp: CreateInvitationInput,
    invite_repo: InviteRepoPort,
    user_repo: UserRepoPort,
    auth_adapter: AuthAdapterPort,
    time: TimePort,
) -> CreateInvitationOutput:
    if not inp.creator.has_any_role(STAFF_ADMIN_ROLES):
        return CreateInvitationOutput(
            success=False, error="User cannot create invites", error_code=ErrorCode.FORBIDDEN
        )

    if inp.role == "owner":
        return CreateInvitationOutput(
            success=False, error="The owner role cannot be invited", error_code=ErrorCode.VALIDATION
        )

    errors = validate_email(inp.email)
    if errors:
        return CreateInvitationOutput(
            success=False, error=errors[0].message, error_code=ErrorCode.VALIDATION
        )

    email = normalize_email(inp.email)
    if user_repo.get_by_email(email):
        return CreateInvitationOutput(
            success=False, error=_EMAIL_TAKEN, error_code=ErrorCode.CONFLICT
        )

    token = auth_adapter.create_token()
    now = time.now_utc()

    invite = Invite(
        id=uuid4(),
        token_hash=auth_adapter.hash_token(token),
        email=email,
        role=inp.role,
        expires_at=now + timedelta(days=inp.days_valid),
        invited_by_user_id=inp.creator.id,
        created_at=now,
    )
    invite_repo.save(invite)
    logger.info("Invitation %s created for role %s", invite.id, invite.role)
    return CreateInvitationOutput(invite=invite, token=token, success=True)


def run(
    inp: CheckInvitationInput | AcceptInvitationInput | CreateInvitationInput,
    *,
    invite_repo: InviteRepoPort,
    user_repo: UserRepoPort,
    time: TimePort,
    auth_adapter: AuthAdapterPort | None = None,  # Not needed for check
    session_store: SessionStorePort | None = None,  # Only needed for accept
    policy: InvitationPolicy | None = None,
) -> InvitationStatusOutput | AcceptInvitationOutput | CreateInvitationOutput:
    if isinstance(inp, CheckInvitationInput):
        return run_check(inp, invite_repo, user_repo, time)

    elif isinstance(inp, AcceptInvitationInput):
        assert auth_adapter and session_store
        return run_accept(
            inp,
            invite_repo,
            user_repo,
            auth_adapter,
            session_store,
            policy or InvitationPolicy(),
            time,
        )

    elif isinstance(inp, CreateInvitationInput):
        assert auth_adapter
        return run_create(inp, invite_repo, user_repo, auth_adapter, time)

    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
