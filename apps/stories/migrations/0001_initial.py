import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


def base_fields():
    return [
        ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier (UUID)', primary_key=True, serialize=False, verbose_name='ID')),
        ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False, help_text='Timestamp when record was created', verbose_name='Created At')),
        ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated', verbose_name='Updated At')),
    ]


STORY_STATUS_CHOICES = [
    ('DRAFT', 'Draft'),
    ('IN_REVIEW', 'In Review'),
    ('NEEDS_REVISION', 'Needs Revision'),
    ('PENDING_APPROVAL', 'Pending Approval'),
    ('PENDING_TRANSLATION', 'Pending Translation'),
    ('APPROVED', 'Approved'),
    ('READY_TO_PUBLISH', 'Ready to Publish'),
    ('PUBLISHED', 'Published'),
    ('ARCHIVED', 'Archived'),
]

STORY_STAGE_CHOICES = [
    ('DRAFT', 'Draft'),
    ('NEEDS_JOURNALIST_REVIEW', 'Needs Journalist Review'),
    ('NEEDS_SUB_EDITOR_APPROVAL', 'Needs Sub-Editor Approval'),
    ('APPROVED', 'Approved'),
    ('TRANSLATED', 'Translated'),
    ('PUBLISHED', 'Published'),
    ('ARCHIVED', 'Archived'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Category',
            fields=base_fields() + [
                ('name', models.CharField(max_length=100, unique=True)),
                ('slug', models.SlugField(blank=True, max_length=120, unique=True)),
                ('description', models.TextField(blank=True)),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='children', to='stories.category')),
            ],
            options={
                'verbose_name_plural': 'Categories',
                'db_table': 'story_categories',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Tag',
            fields=base_fields() + [
                ('name', models.CharField(max_length=100, unique=True)),
                ('slug', models.SlugField(blank=True, max_length=120, unique=True)),
                ('color', models.CharField(blank=True, help_text='Hex colour, e.g. #3B82F6', max_length=7)),
            ],
            options={
                'db_table': 'story_tags',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Classification',
            fields=base_fields() + [
                ('name', models.CharField(max_length=100)),
                ('slug', models.SlugField(blank=True, max_length=120)),
                ('type', models.CharField(choices=[('LANGUAGE', 'Language'), ('RELIGION', 'Religion'), ('LOCALITY', 'Locality')], db_index=True, max_length=20)),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'db_table': 'story_classifications',
                'ordering': ['type', 'name'],
                'constraints': [models.UniqueConstraint(fields=('type', 'name'), name='unique_classification_per_type')],
            },
        ),
        migrations.CreateModel(
            name='AudioClip',
            fields=base_fields() + [
                ('filename', models.CharField(max_length=255)),
                ('url', models.URLField(max_length=1000)),
                ('duration', models.PositiveIntegerField(blank=True, help_text='Duration in seconds', null=True)),
                ('file_size', models.PositiveIntegerField(blank=True, help_text='Size in bytes', null=True)),
                ('mime_type', models.CharField(blank=True, max_length=100)),
                ('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='uploaded_clips', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'audio_clips',
                'ordering': ['-created_at'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='Story',
            fields=base_fields() + [
                ('title', models.CharField(max_length=500)),
                ('slug', models.SlugField(blank=True, max_length=520)),
                ('body', models.TextField(blank=True)),
                ('status', models.CharField(choices=STORY_STATUS_CHOICES, db_index=True, default='DRAFT', max_length=30, verbose_name='Status')),
                ('stage', models.CharField(choices=STORY_STAGE_CHOICES, db_index=True, default='DRAFT', help_text='Derived from status; used for "assigned to me" views', max_length=40, verbose_name='Stage')),
                ('version', models.PositiveIntegerField(default=1, help_text='Incremented on every workflow transition', verbose_name='Version')),
                ('language', models.CharField(default='ENGLISH', help_text='Language the story is written in', max_length=20, verbose_name='Language')),
                ('is_translation', models.BooleanField(db_index=True, default=False)),
                ('published_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('author', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='authored_stories', to=settings.AUTH_USER_MODEL)),
                ('assigned_reviewer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stories_to_review', to=settings.AUTH_USER_MODEL)),
                ('assigned_approver', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stories_to_approve', to=settings.AUTH_USER_MODEL)),
                ('category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stories', to='stories.category')),
                ('original_story', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='translations', to='stories.story')),
                ('published_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='published_stories', to=settings.AUTH_USER_MODEL)),
                ('tags', models.ManyToManyField(blank=True, related_name='stories', to='stories.tag')),
                ('classifications', models.ManyToManyField(blank=True, related_name='stories', to='stories.classification')),
            ],
            options={
                'verbose_name_plural': 'Stories',
                'db_table': 'stories',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', '-created_at'], name='story_status_created_idx'),
                    models.Index(fields=['stage', 'assigned_reviewer'], name='story_stage_reviewer_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('is_translation', True)), fields=('original_story', 'language'), name='unique_translation_language'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StoryAudioClip',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('added_at', models.DateTimeField(auto_now_add=True)),
                ('story', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='story_clips', to='stories.story')),
                ('audio_clip', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='story_links', to='stories.audioclip')),
                ('added_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'story_audio_clips',
                'constraints': [models.UniqueConstraint(fields=('story', 'audio_clip'), name='unique_story_audio_clip')],
            },
        ),
        migrations.AddField(
            model_name='story',
            name='audio_clips',
            field=models.ManyToManyField(blank=True, related_name='stories', through='stories.StoryAudioClip', to='stories.audioclip'),
        ),
        migrations.CreateModel(
            name='RevisionRequest',
            fields=base_fields() + [
                ('requested_by_role', models.CharField(blank=True, max_length=20)),
                ('comment', models.TextField()),
                ('resolved_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('story', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='revision_requests', to='stories.story')),
                ('requested_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='revision_requests_made', to=settings.AUTH_USER_MODEL)),
                ('resolved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='revision_requests_resolved', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'story_revision_requests',
                'ordering': ['-created_at'],
            },
        ),
    ]
