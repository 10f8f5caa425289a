import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('stories', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Bulletin',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier (UUID)', primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False, help_text='Timestamp when record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated', verbose_name='Updated At')),
                ('title', models.CharField(max_length=500)),
                ('intro', models.TextField(blank=True)),
                ('outro', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('DRAFT', 'Draft'), ('IN_REVIEW', 'In Review'), ('NEEDS_REVISION', 'Needs Revision'), ('APPROVED', 'Approved'), ('PUBLISHED', 'Published'), ('ARCHIVED', 'Archived')], db_index=True, default='DRAFT', max_length=30, verbose_name='Status')),
                ('version', models.PositiveIntegerField(default=1, help_text='Incremented on every workflow transition', verbose_name='Version')),
                ('published_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('author', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='authored_bulletins', to=settings.AUTH_USER_MODEL)),
                ('reviewer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='bulletins_to_review', to=settings.AUTH_USER_MODEL)),
                ('publisher', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='published_bulletins', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bulletins',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status', '-created_at'], name='bulletin_status_created_idx')],
            },
        ),
        migrations.CreateModel(
            name='BulletinStory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order', models.PositiveIntegerField()),
                ('bulletin', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bulletin_stories', to='bulletins.bulletin')),
                ('story', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bulletin_links', to='stories.story')),
            ],
            options={
                'db_table': 'bulletin_stories',
                'ordering': ['order'],
                'constraints': [
                    models.UniqueConstraint(fields=('bulletin', 'order'), name='unique_bulletin_order'),
                    models.UniqueConstraint(fields=('bulletin', 'story'), name='unique_bulletin_story'),
                ],
            },
        ),
        migrations.AddField(
            model_name='bulletin',
            name='stories',
            field=models.ManyToManyField(blank=True, related_name='bulletins', through='bulletins.BulletinStory', to='stories.story'),
        ),
    ]
