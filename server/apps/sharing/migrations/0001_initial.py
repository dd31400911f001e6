import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('files', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Share',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('resource_id', models.UUIDField(db_index=True)),
                ('resource_kind', models.CharField(choices=[('file', 'File'), ('folder', 'Folder')], max_length=16)),
                ('kind', models.CharField(choices=[('LINK', 'Link'), ('USER', 'User')], max_length=8)),
                ('permission', models.CharField(choices=[('READ', 'Read only'), ('WRITE', 'Read and write')], default='READ', max_length=8)),
                ('token', models.CharField(blank=True, help_text='URL-safe random token (LINK shares only)', max_length=128, null=True, unique=True)),
                ('password_hash', models.CharField(blank=True, default='', help_text='Hashed access password, empty when unprotected', max_length=255)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('is_revoked', models.BooleanField(default=False)),
                ('access_count', models.PositiveBigIntegerField(default=0)),
                ('last_access_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('modified_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='shares_created', to=settings.AUTH_USER_MODEL)),
                ('recipient', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='shares_received', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Share',
                'verbose_name_plural': 'Shares',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['resource_id', 'resource_kind'], name='shares_resource_idx')],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(('kind', 'LINK'), ('recipient__isnull', True), ('token__isnull', False)),
                            models.Q(('kind', 'USER'), ('recipient__isnull', False), ('token__isnull', True)),
                            _connector='OR',
                        ),
                        name='shares_kind_target_consistent',
                    ),
                ],
            },
        ),
    ]
