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
            name='TransitionHistory',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False, verbose_name='ID')),
                ('entity_type', models.CharField(choices=[('story', 'Story'), ('bulletin', 'Bulletin')], max_length=20, verbose_name='Entity Type')),
                ('entity_id', models.UUIDField(help_text='Primary key of the story or bulletin', verbose_name='Entity ID')),
                ('sequence', models.PositiveIntegerField(help_text='Position of this entry in the entity history', verbose_name='Sequence')),
                ('action', models.CharField(help_text='Transition action name (e.g. submit_for_review)', max_length=50, verbose_name='Action')),
                ('from_status', models.CharField(max_length=30)),
                ('to_status', models.CharField(max_length=30)),
                ('from_stage', models.CharField(blank=True, max_length=40)),
                ('to_stage', models.CharField(blank=True, max_length=40)),
                ('comment', models.TextField(blank=True)),
                ('details', models.JSONField(blank=True, default=dict, help_text='Assignment, request id and other transition context', verbose_name='Details')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, editable=False, verbose_name='Created At')),
                ('actor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transition_history', to=settings.AUTH_USER_MODEL, verbose_name='Actor')),
            ],
            options={
                'verbose_name': 'Transition History Entry',
                'verbose_name_plural': 'Transition History',
                'db_table': 'workflow_transition_history',
                'ordering': ['entity_type', 'entity_id', 'sequence'],
                'indexes': [models.Index(fields=['entity_type', 'entity_id'], name='history_entity_idx')],
                'constraints': [models.UniqueConstraint(fields=('entity_type', 'entity_id', 'sequence'), name='unique_history_sequence_per_entity')],
            },
        ),
    ]
