"""Tests for share operations business logic."""

import uuid
from datetime import timedelta

import pytest
from django.core.exceptions import ValidationError
from django.utils import timezone

from server.apps.files.exceptions import (
    AccessDeniedError,
    ErrorKind,
    PersistenceFailedError,
    ResourceNotFoundError,
)
from server.apps.sharing.exceptions import (
    InvalidPasswordError,
    InvalidResourceTypeError,
    InvalidShareKindError,
    ShareExpiredError,
    ShareNotFoundError,
    ShareRevokedError,
)
from server.apps.sharing.logic import share_operations
from server.apps.sharing.logic.share_operations import (
    check_direct_access,
    create_link_share,
    create_user_share,
    delete_share,
    get_share,
    get_share_url,
    is_share_accessible,
    list_shares_by_owner,
    list_shares_for_resource,
    list_shares_with_user,
    resolve_by_token,
    revoke_share,
    set_share_expiration,
    set_share_password,
)
from server.apps.sharing.models import (
    ResourceKind,
    Share,
    ShareKind,
    SharePermission,
)


@pytest.mark.django_db
def test_create_link_share(user, shared_file, link_share):
    """Test a link share gets a long URL-safe token."""
    assert link_share.kind == ShareKind.LINK
    assert link_share.owner == user
    assert link_share.resource_id == shared_file.id
    assert link_share.permission == SharePermission.READ
    assert link_share.recipient is None
    # 32 random bytes encode to 43 URL-safe characters
    assert len(link_share.token) >= 43
    assert set(link_share.token) <= set(
        'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_',
    )


@pytest.mark.django_db
def test_link_tokens_unique(user, shared_file):
    """Test every link share gets a different token."""
    tokens = {
        create_link_share(user, shared_file.id, ResourceKind.FILE).token
        for _ in range(20)
    }

    assert len(tokens) == 20


@pytest.mark.django_db
def test_link_token_collision_regenerates(
    user,
    shared_file,
    link_share,
    monkeypatch,
):
    """Test a colliding token is replaced by a fresh one."""
    tokens = iter([link_share.token, 'fresh-token'])
    monkeypatch.setattr(share_operations, '_generate_token', lambda: next(tokens))

    share = create_link_share(user, shared_file.id, ResourceKind.FILE)

    assert share.token == 'fresh-token'


@pytest.mark.django_db
def test_link_token_collision_gives_up(
    user,
    shared_file,
    link_share,
    monkeypatch,
):
    """Test repeated collisions end in a persistence error."""
    monkeypatch.setattr(
        share_operations,
        '_generate_token',
        lambda: link_share.token,
    )

    with pytest.raises(PersistenceFailedError):
        create_link_share(user, shared_file.id, ResourceKind.FILE)

    assert Share.objects.count() == 1


@pytest.mark.django_db
def test_create_link_share_for_folder(user, shared_folder):
    """Test folders can be shared by link."""
    share = create_link_share(user, shared_folder.id, 'folder', 'WRITE')

    assert share.resource_kind == ResourceKind.FOLDER
    assert share.permission == SharePermission.WRITE


@pytest.mark.django_db
def test_create_share_not_owner(other_user, shared_file):
    """Test only the owner may share a resource."""
    with pytest.raises(AccessDeniedError):
        create_link_share(other_user, shared_file.id, ResourceKind.FILE)


@pytest.mark.django_db
def test_create_share_missing_resource(user):
    """Test sharing a missing resource fails."""
    with pytest.raises(ResourceNotFoundError):
        create_link_share(user, uuid.uuid4(), ResourceKind.FILE)


@pytest.mark.django_db
def test_create_share_invalid_kind(user, shared_file):
    """Test unknown resource kinds are rejected."""
    with pytest.raises(InvalidResourceTypeError):
        create_link_share(user, shared_file.id, 'album')


@pytest.mark.django_db
def test_create_share_invalid_permission(user, shared_file):
    """Test unknown permissions are rejected."""
    with pytest.raises(ValidationError):
        create_link_share(user, shared_file.id, ResourceKind.FILE, 'ADMIN')


@pytest.mark.django_db
def test_create_user_share(user, other_user, user_share):
    """Test a user share names a recipient and has no token."""
    assert user_share.kind == ShareKind.USER
    assert user_share.recipient == other_user
    assert user_share.token is None


@pytest.mark.django_db
def test_resolve_by_token(link_share):
    """Test resolving records exactly one access."""
    share = resolve_by_token(link_share.token)

    assert share.id == link_share.id
    assert share.access_count == 1
    assert share.last_access_at is not None

    assert resolve_by_token(link_share.token).access_count == 2


@pytest.mark.django_db
def test_resolve_unknown_token(db):
    """Test unknown tokens are not found."""
    with pytest.raises(ShareNotFoundError) as exc_info:
        resolve_by_token('no-such-token')

    assert exc_info.value.kind == ErrorKind.NOT_FOUND


@pytest.mark.django_db
def test_resolve_revoked(user, link_share):
    """Test revoked shares fail and are not counted."""
    revoke_share(link_share.id, user)

    with pytest.raises(ShareRevokedError):
        resolve_by_token(link_share.token)

    link_share.refresh_from_db()
    assert link_share.access_count == 0


@pytest.mark.django_db
def test_resolve_expired(user, link_share):
    """Test expired shares fail and are not counted."""
    set_share_expiration(
        link_share.id,
        user,
        timezone.now() - timedelta(minutes=1),
    )

    with pytest.raises(ShareExpiredError) as exc_info:
        resolve_by_token(link_share.token)

    assert exc_info.value.kind == ErrorKind.SHARE_EXPIRED
    link_share.refresh_from_db()
    assert link_share.access_count == 0


@pytest.mark.django_db
def test_resolve_future_expiry(user, link_share):
    """Test shares with a future expiry still work."""
    set_share_expiration(
        link_share.id,
        user,
        timezone.now() + timedelta(days=1),
    )

    assert resolve_by_token(link_share.token).access_count == 1


@pytest.mark.django_db
def test_revoked_checked_before_expired(user, link_share):
    """Test a revoked and expired share reports revocation."""
    set_share_expiration(
        link_share.id,
        user,
        timezone.now() - timedelta(minutes=1),
    )
    revoke_share(link_share.id, user)

    with pytest.raises(ShareRevokedError):
        resolve_by_token(link_share.token)


@pytest.mark.django_db
def test_resolve_with_password(user, link_share):
    """Test password protected shares need the right password."""
    set_share_password(link_share.id, user, 's3cret')
    link_share.refresh_from_db()
    assert link_share.has_password is True
    assert 's3cret' not in link_share.password_hash

    with pytest.raises(InvalidPasswordError):
        resolve_by_token(link_share.token)
    with pytest.raises(InvalidPasswordError):
        resolve_by_token(link_share.token, 'wrong')

    link_share.refresh_from_db()
    assert link_share.access_count == 0

    assert resolve_by_token(link_share.token, 's3cret').access_count == 1


@pytest.mark.django_db
def test_clear_password(user, link_share):
    """Test clearing the password makes the link open again."""
    set_share_password(link_share.id, user, 's3cret')
    set_share_password(link_share.id, user, None)

    assert resolve_by_token(link_share.token).access_count == 1


@pytest.mark.django_db
def test_password_on_user_share(user, user_share):
    """Test user shares cannot carry a password."""
    with pytest.raises(InvalidShareKindError):
        set_share_password(user_share.id, user, 's3cret')


@pytest.mark.django_db
def test_record_access_after_concurrent_revoke(link_share, monkeypatch):
    """Test a revoke between checks and counting is honored."""
    original = share_operations._record_access

    def revoke_then_record(share):
        Share.objects.filter(pk=share.pk).update(is_revoked=True)
        original(share)

    monkeypatch.setattr(share_operations, '_record_access', revoke_then_record)

    with pytest.raises(ShareRevokedError):
        resolve_by_token(link_share.token)

    link_share.refresh_from_db()
    assert link_share.access_count == 0


@pytest.mark.django_db
def test_revoke_idempotent(user, link_share):
    """Test revoking twice keeps the share revoked."""
    revoke_share(link_share.id, user)
    share = revoke_share(link_share.id, user)

    assert share.is_revoked is True


@pytest.mark.django_db
def test_manage_share_not_owner(other_user, link_share):
    """Test only the owner may manage a share."""
    with pytest.raises(AccessDeniedError):
        revoke_share(link_share.id, other_user)
    with pytest.raises(AccessDeniedError):
        set_share_password(link_share.id, other_user, 'mine')
    with pytest.raises(AccessDeniedError):
        delete_share(link_share.id, other_user)


@pytest.mark.django_db
def test_get_share_missing(user):
    """Test unknown share IDs are not found."""
    with pytest.raises(ShareNotFoundError):
        get_share(uuid.uuid4(), user)


@pytest.mark.django_db
def test_delete_share(user, link_share):
    """Test deleted shares can no longer be resolved."""
    delete_share(link_share.id, user)

    with pytest.raises(ShareNotFoundError):
        resolve_by_token(link_share.token)


@pytest.mark.django_db
def test_check_direct_access(user, other_user, stranger, shared_file, user_share):
    """Test only the recipient of an active user share has access."""
    assert check_direct_access(other_user, shared_file.id, 'file') is True
    assert check_direct_access(stranger, shared_file.id, 'file') is False
    assert check_direct_access(None, shared_file.id, 'file') is False


@pytest.mark.django_db
def test_check_direct_access_inactive(user, other_user, shared_file, user_share):
    """Test expired or revoked user shares grant nothing."""
    set_share_expiration(
        user_share.id,
        user,
        timezone.now() - timedelta(minutes=1),
    )
    assert check_direct_access(other_user, shared_file.id, 'file') is False

    set_share_expiration(user_share.id, user, None)
    revoke_share(user_share.id, user)
    assert check_direct_access(other_user, shared_file.id, 'file') is False


@pytest.mark.django_db
def test_link_share_gives_no_direct_access(other_user, shared_file, link_share):
    """Test link shares never count as direct access."""
    assert check_direct_access(other_user, shared_file.id, 'file') is False


@pytest.mark.django_db
def test_list_shares(user, other_user, stranger, shared_file, link_share, user_share):
    """Test listing by owner, by resource and by recipient."""
    assert set(list_shares_by_owner(user)) == {link_share, user_share}
    assert set(
        list_shares_for_resource(user, shared_file.id, 'file'),
    ) == {link_share, user_share}
    assert list(list_shares_with_user(other_user)) == [user_share]
    assert list(list_shares_with_user(stranger)) == []


@pytest.mark.django_db
def test_list_shares_for_resource_not_owner(other_user, shared_file, link_share):
    """Test only the owner may list shares of a resource."""
    with pytest.raises(AccessDeniedError):
        list_shares_for_resource(other_user, shared_file.id, 'file')


@pytest.mark.django_db
def test_get_share_url(link_share, user_share):
    """Test link shares have a URL and user shares do not."""
    url = get_share_url(link_share, 'https://files.example.com/')

    assert url == f'https://files.example.com/share/{link_share.token}'
    with pytest.raises(InvalidShareKindError):
        get_share_url(user_share, 'https://files.example.com')


@pytest.mark.django_db
def test_is_share_accessible(user, link_share):
    """Test accessibility follows revocation."""
    assert is_share_accessible(link_share) is True

    assert is_share_accessible(revoke_share(link_share.id, user)) is False


@pytest.mark.django_db
def test_owner_updates_keep_access_count(user, link_share):
    """Test changing password or expiry leaves the access counter alone."""
    resolve_by_token(link_share.token)
    resolve_by_token(link_share.token)

    set_share_password(link_share.id, user, 's3cret')
    set_share_expiration(
        link_share.id,
        user,
        timezone.now() + timedelta(days=1),
    )

    link_share.refresh_from_db()
    assert link_share.access_count == 2
    assert link_share.last_access_at is not None
