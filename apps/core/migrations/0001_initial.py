import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StaffProfile',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier (UUID)', primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False, help_text='Timestamp when record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated', verbose_name='Updated At')),
                ('role', models.CharField(choices=[('INTERN', 'Intern'), ('JOURNALIST', 'Journalist'), ('SUB_EDITOR', 'Sub-Editor'), ('EDITOR', 'Editor'), ('ADMIN', 'Administrator'), ('SUPERADMIN', 'Super Administrator')], db_index=True, default='INTERN', help_text='Newsroom role determining workflow permissions', max_length=20, verbose_name='Role')),
                ('language', models.CharField(blank=True, help_text='Preferred working language (e.g. ENGLISH, AFRIKAANS, XHOSA)', max_length=20, verbose_name='Language')),
                ('timezone', models.CharField(default='UTC', help_text='User preferred timezone', max_length=50, verbose_name='Timezone')),
                ('last_active_at', models.DateTimeField(blank=True, help_text='When user was last active in the newsroom', null=True, verbose_name='Last Active')),
                ('user', models.OneToOneField(help_text='The associated Django user account', on_delete=django.db.models.deletion.CASCADE, related_name='staff_profile', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Staff Profile',
                'verbose_name_plural': 'Staff Profiles',
                'db_table': 'staff_profiles',
            },
        ),
    ]
