"""
Management command to seed the platform system-admin role.

Creates the global SysAdmin role holding every global authority and,
optionally, grants it to the user owning a principal. Safe to run
repeatedly.
"""
from django.core.management.base import BaseCommand
from django.db import transaction
from apps.rbac.authorities import GLOBAL_AUTHORITIES, sort_authorities
from apps.rbac.models import User, Role, RoleKind, UserRole, AuditLog


class Command(BaseCommand):
    help = 'Create the global system-admin role and grant it to a principal'
    
    def add_arguments(self, parser):
        parser.add_argument(
            '--principal',
            type=str,
            help='Principal name of the user to grant the role to (created if missing)',
        )
    
    @transaction.atomic
    def handle(self, *args, **options):
        principal = options.get('principal')
        
        role = Role.objects.global_roles().filter(kind=RoleKind.SYSTEM_ADMIN).first()
        if role is None:
            role = Role.objects.create(
                tenant=None,
                name=Role.SYSADMIN_NAME,
                kind=RoleKind.SYSTEM_ADMIN,
                authorities=sort_authorities(GLOBAL_AUTHORITIES),
            )
            self.stdout.write(self.style.SUCCESS(f'Created role: {role.name}'))
        else:
            missing = set(GLOBAL_AUTHORITIES) - role.authority_set
            if missing:
                role.authorities = sort_authorities(role.authority_set | missing)
                role.save(update_fields=['authorities', 'updated_at'])
                self.stdout.write(f'Added authorities: {", ".join(sort_authorities(missing))}')
            else:
                self.stdout.write(f'Role already exists: {role.name}')
        
        if not principal:
            return
        
        user = User.objects.get_or_provision(principal)
        if user.roles.filter(id=role.id).exists():
            self.stdout.write(f'{principal} already holds {role.name}')
            return
        
        UserRole.objects.grant(user, [role])
        AuditLog.log_action(
            action='system_admin_granted',
            user=None,
            target_type='User',
            target_id=user.id,
            diff={'role_id': str(role.id), 'principal': principal},
        )
        self.stdout.write(self.style.SUCCESS(f'Granted {role.name} to {principal}'))
