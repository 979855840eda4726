import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('tenants', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('display_name', models.CharField(blank=True, help_text='Name shown to other users', max_length=255)),
            ],
            options={
                'db_table': 'users',
                'ordering': ['display_name'],
            },
        ),
        migrations.CreateModel(
            name='Role',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('name', models.CharField(db_index=True, help_text='Role name (unique across the platform for ordinary roles)', max_length=100)),
                ('kind', models.CharField(choices=[('ORDINARY', 'Ordinary'), ('TENANT_SUPERADMIN', 'Tenant super-admin'), ('SYSTEM_ADMIN', 'System admin')], db_index=True, default='ORDINARY', help_text='Role kind, immutable after creation', max_length=32)),
                ('authorities', models.JSONField(blank=True, default=list, help_text='Authority names granted by this role')),
                ('tenant', models.ForeignKey(blank=True, help_text='Tenant this role belongs to (null for global roles)', null=True, on_delete=django.db.models.deletion.CASCADE, related_name='roles', to='tenants.tenant')),
            ],
            options={
                'db_table': 'roles',
                'ordering': ['name'],
                'indexes': [models.Index(fields=['tenant', 'kind'], name='roles_tenant_kind_idx')],
            },
        ),
        migrations.CreateModel(
            name='Principal',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('name', models.CharField(help_text='Principal name as asserted by the identity provider', max_length=320, unique=True)),
                ('user', models.ForeignKey(help_text='User this principal belongs to', on_delete=django.db.models.deletion.CASCADE, related_name='principals', to='rbac.user')),
            ],
            options={
                'db_table': 'user_principals',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='UserRole',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('role', models.ForeignKey(help_text='Role held', on_delete=django.db.models.deletion.PROTECT, related_name='user_roles', to='rbac.role')),
                ('user', models.ForeignKey(help_text='User holding the role', on_delete=django.db.models.deletion.CASCADE, related_name='user_roles', to='rbac.user')),
            ],
            options={
                'db_table': 'user_roles',
                'unique_together': {('user', 'role')},
            },
        ),
        migrations.AddField(
            model_name='user',
            name='roles',
            field=models.ManyToManyField(blank=True, help_text='Roles held by this user across all tenants', related_name='users', through='rbac.UserRole', to='rbac.role'),
        ),
        migrations.CreateModel(
            name='InviteToken',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('token', models.CharField(db_index=True, help_text='Opaque invite token', max_length=128, unique=True)),
                ('role_ids', models.JSONField(blank=True, default=list, help_text='Ids of the roles granted on acceptance')),
                ('expires_at', models.DateTimeField(db_index=True, help_text='Token is invalid after this moment')),
                ('tenant', models.ForeignKey(help_text='Tenant the invite grants access to', on_delete=django.db.models.deletion.CASCADE, related_name='invite_tokens', to='tenants.tenant')),
            ],
            options={
                'db_table': 'invite_tokens',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('tenant_id', models.UUIDField(blank=True, db_index=True, help_text='Tenant this action belongs to (null for platform-level)', null=True)),
                ('action', models.CharField(db_index=True, help_text="Action performed (e.g., 'role_created', 'user_roles_changed')", max_length=100)),
                ('target_type', models.CharField(help_text="Type of target entity (e.g., 'Role', 'User')", max_length=50)),
                ('target_id', models.UUIDField(blank=True, db_index=True, help_text='ID of target entity', null=True)),
                ('diff', models.JSONField(blank=True, default=dict, help_text='Before/after changes in JSON format')),
                ('ip_address', models.GenericIPAddressField(blank=True, help_text='IP address of the request', null=True)),
                ('user_agent', models.TextField(blank=True, help_text='User agent string')),
                ('request_id', models.CharField(blank=True, db_index=True, help_text='Request ID for tracing', max_length=64)),
                ('user', models.ForeignKey(blank=True, help_text='User who performed the action (null for system actions)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to='rbac.user')),
            ],
            options={
                'db_table': 'audit_logs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['tenant_id', 'created_at'], name='audit_tenant_created_idx'),
                    models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
                ],
            },
        ),
    ]
