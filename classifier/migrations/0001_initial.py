import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='ImageClass',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Display name, e.g. "cat".', max_length=150, validators=[django.core.validators.MinLengthValidator(1)])),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                'verbose_name': 'Image class',
                'verbose_name_plural': 'Image classes',
                'db_table': 'image_classes',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='ModelInfo',
            fields=[
                ('key', models.CharField(default='current', max_length=50, primary_key=True, serialize=False)),
                ('class_labels', models.JSONField(blank=True, default=list, help_text='[{"id", "name", "index"}, …] in output-unit order.')),
                ('architecture', models.CharField(blank=True, default='', max_length=20)),
                ('model_path', models.CharField(blank=True, default='', max_length=500)),
                ('extra', models.JSONField(blank=True, default=dict)),
                ('saved_at', models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                'verbose_name': 'Model info',
                'verbose_name_plural': 'Model info',
                'db_table': 'model_info',
            },
        ),
        migrations.CreateModel(
            name='Setting',
            fields=[
                ('key', models.CharField(max_length=100, primary_key=True, serialize=False)),
                ('value', models.JSONField(blank=True, null=True)),
            ],
            options={
                'db_table': 'settings',
            },
        ),
        migrations.CreateModel(
            name='TrainingImage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('data', models.BinaryField(help_text='Encoded image file contents.')),
                ('content_type', models.CharField(default='image/png', max_length=50)),
                ('filename', models.CharField(blank=True, default='', max_length=255)),
                ('file_size', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('image_class', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='images', to='classifier.imageclass')),
            ],
            options={
                'verbose_name': 'Training image',
                'verbose_name_plural': 'Training images',
                'db_table': 'training_images',
                'ordering': ['id'],
            },
        ),
    ]
