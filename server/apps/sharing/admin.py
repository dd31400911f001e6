"""Django admin configuration for sharing app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest
from django.utils.html import format_html

from server.apps.sharing.models import Share


@admin.register(Share)
class ShareAdmin(admin.ModelAdmin):
    """Admin interface for Share model."""

    list_display = [
        'id',
        'owner',
        'kind',
        'resource_kind',
        'resource_id',
        'recipient',
        'permission',
        'status_display',
        'access_count',
        'created_at',
    ]

    list_filter = [
        'kind',
        'resource_kind',
        'permission',
        'is_revoked',
        'created_at',
    ]

    search_fields = [
        'owner__username',
        'recipient__username',
        'resource_id',
    ]

    # Token and password hash are credentials, never editable here
    readonly_fields = [
        'id',
        'token',
        'password_hash',
        'access_count',
        'last_access_at',
        'created_at',
        'modified_at',
    ]

    fieldsets = (
        ('Share', {
            'fields': ('id', 'owner', 'kind', 'permission', 'recipient'),
        }),
        ('Resource', {
            'fields': ('resource_kind', 'resource_id'),
        }),
        ('Link', {
            'fields': ('token', 'password_hash'),
        }),
        ('Lifecycle', {
            'fields': ('expires_at', 'is_revoked'),
        }),
        ('Usage', {
            'fields': (
                'access_count',
                'last_access_at',
                'created_at',
                'modified_at',
            ),
        }),
    )

    actions = ['revoke_selected']

    def status_display(self, obj: Share) -> str:
        """Display whether the share still grants access.

        Args:
            obj: Share instance.

        Returns:
            HTML formatted status indicator.
        """
        if obj.is_revoked:
            color, status = '#dc3545', 'Revoked'
        elif obj.is_expired():
            color, status = '#6c757d', 'Expired'
        else:
            color, status = '#28a745', 'Active'
        return format_html(
            '<span style="color: {color}; font-weight: bold;">'
            '{status}</span>',
            color=color,
            status=status,
        )
    status_display.short_description = 'Status'  # type: ignore[attr-defined]

    @admin.action(description='Revoke selected shares')
    def revoke_selected(
        self,
        request: HttpRequest,
        queryset: QuerySet[Share],
    ) -> None:
        """Revoke every selected share.

        Args:
            request: HTTP request.
            queryset: Selected shares.
        """
        revoked = queryset.filter(is_revoked=False).update(is_revoked=True)
        self.message_user(request, f'Revoked {revoked} shares')

    def get_queryset(self, request: HttpRequest) -> QuerySet[Share]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related(
            'owner',
            'recipient',
        )
