"""Django admin configuration for files app."""


from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest
from django.utils.html import format_html

from server.apps.files.models import File, Folder, UserQuota


def format_bytes(size_bytes: int) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    if size_bytes < 1024:
        return f'{size_bytes} B'
    if size_bytes < 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / 1024:.1f} KB'
    if size_bytes < 1024 * 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / (1024 * 1024):.1f} MB'
    return f'{size_bytes / (1024 * 1024 * 1024):.1f} GB'


@admin.register(Folder)
class FolderAdmin(admin.ModelAdmin):
    """Admin interface for Folder model."""

    list_display = [
        'name',
        'user',
        'parent',
        'created_at',
    ]

    list_filter = [
        'user',
        'created_at',
    ]

    search_fields = [
        'name',
    ]

    readonly_fields = ['id', 'created_at', 'modified_at']

    raw_id_fields = ['parent']

    def get_queryset(self, request: HttpRequest) -> QuerySet[Folder]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user', 'parent')


@admin.register(File)
class FileAdmin(admin.ModelAdmin):
    """Admin interface for File model."""

    list_display = [
        'name',
        'user',
        'folder',
        'size_display',
        'mime_type',
        'is_public',
        'uploaded_at',
    ]

    list_filter = [
        'mime_type',
        'is_public',
        'uploaded_at',
        'user',
    ]

    search_fields = [
        'name',
        'storage_key',
    ]

    readonly_fields = [
        'id',
        'storage_key',
        'size_bytes',
        'mime_type',
        'uploaded_at',
        'modified_at',
    ]

    raw_id_fields = ['folder']

    fieldsets = (
        ('File Information', {
            'fields': ('id', 'name', 'user', 'folder', 'is_public'),
        }),
        ('Storage', {
            'fields': (
                'storage_key',
                'size_bytes',
                'mime_type',
            ),
        }),
        ('Timestamps', {
            'fields': ('uploaded_at', 'modified_at'),
        }),
    )

    def size_display(self, obj: File) -> str:
        """Display file size in human-readable format.

        Args:
            obj: File instance.

        Returns:
            Formatted size string.
        """
        return format_bytes(obj.size_bytes)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[File]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user', 'folder')


@admin.register(UserQuota)
class UserQuotaAdmin(admin.ModelAdmin):
    """Admin interface for UserQuota model."""

    list_display = [
        'user',
        'quota_display',
        'used_display',
        'percentage_display',
        'status_display',
    ]

    search_fields = [
        'user__username',
        'user__email',
    ]

    readonly_fields = [
        'user',
        'used_bytes',
    ]

    fieldsets = (
        ('User', {
            'fields': ('user',),
        }),
        ('Quota Settings', {
            'fields': ('quota_bytes',),
            'description': 'Leave empty for unlimited storage.',
        }),
        ('Current Usage', {
            'fields': ('used_bytes',),
        }),
    )

    def quota_display(self, obj: UserQuota) -> str:
        """Display quota in human-readable format.

        Args:
            obj: UserQuota instance.

        Returns:
            Formatted quota string, 'Unlimited' when no limit is set.
        """
        if obj.quota_bytes is None:
            return 'Unlimited'
        return format_bytes(obj.quota_bytes)
    quota_display.short_description = 'Quota'  # type: ignore[attr-defined]

    def used_display(self, obj: UserQuota) -> str:
        """Display used bytes in human-readable format.

        Args:
            obj: UserQuota instance.

        Returns:
            Formatted used bytes string.
        """
        return format_bytes(obj.used_bytes)
    used_display.short_description = 'Used'  # type: ignore[attr-defined]

    def percentage_display(self, obj: UserQuota) -> str:
        """Display percentage of quota used.

        Args:
            obj: UserQuota instance.

        Returns:
            Percentage string, '-' for unlimited or zero quotas.
        """
        if not obj.quota_bytes:
            return '-'
        percentage = (obj.used_bytes / obj.quota_bytes) * 100
        return f'{percentage:.1f}%'
    percentage_display.short_description = '%'  # type: ignore[attr-defined]

    def status_display(self, obj: UserQuota) -> str:
        """Display status indicator based on usage.

        Args:
            obj: UserQuota instance.

        Returns:
            HTML formatted status indicator.
        """
        if obj.quota_bytes is None:
            color = '#28a745'
            status = 'Unlimited'
        elif obj.quota_bytes == 0 or obj.used_bytes >= obj.quota_bytes:
            color = '#dc3545'  # Red - no room left
            status = 'Full'
        elif obj.used_bytes / obj.quota_bytes >= 0.9:
            color = '#ffc107'  # Yellow - warning
            status = 'Warning'
        else:
            color = '#28a745'  # Green - ok
            status = 'OK'

        return format_html(
            '<span style="color: {color}; font-weight: bold;">'
            '{status}</span>',
            color=color,
            status=status,
        )
    status_display.short_description = 'Status'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[UserQuota]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user')
