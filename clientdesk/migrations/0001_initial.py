import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import clientdesk.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='Client',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=255)),
                ('business_name', models.CharField(max_length=255)),
                ('email', models.EmailField(max_length=254, unique=True)),
                ('phone', models.CharField(blank=True, max_length=50)),
                (
                    'status',
                    models.CharField(
                        choices=[('Complete', 'Complete'), ('Pending', 'Pending'), ('Inactive', 'Inactive')],
                        default='Pending',
                        max_length=16,
                    ),
                ),
                ('package_name', models.CharField(blank=True, max_length=255)),
                ('tags', models.JSONField(blank=True, default=clientdesk.models.empty_list)),
                ('total_sales', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('total_collection', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('balance', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('last_activity', models.DateField(default=django.utils.timezone.localdate)),
                ('invoice_count', models.PositiveIntegerField(default=0)),
                ('registered_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('company', models.CharField(blank=True, max_length=255)),
                ('address', models.TextField(blank=True)),
                ('notes', models.TextField(blank=True)),
            ],
            options={
                'ordering': ['name'],
                'indexes': [models.Index(fields=['status'], name='client_status_idx')],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(status__in=['Complete', 'Pending', 'Inactive']),
                        name='client_status_valid',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                (
                    'is_superuser',
                    models.BooleanField(
                        default=False,
                        help_text='Designates that this user has all permissions without explicitly assigning them.',
                        verbose_name='superuser status',
                    ),
                ),
                (
                    'username',
                    models.CharField(
                        error_messages={'unique': 'A user with that username already exists.'},
                        help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.',
                        max_length=150,
                        unique=True,
                        validators=[django.contrib.auth.validators.UnicodeUsernameValidator()],
                        verbose_name='username',
                    ),
                ),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                (
                    'is_staff',
                    models.BooleanField(
                        default=False,
                        help_text='Designates whether the user can log into this admin site.',
                        verbose_name='staff status',
                    ),
                ),
                (
                    'is_active',
                    models.BooleanField(
                        default=True,
                        help_text=(
                            'Designates whether this user should be treated as active. '
                            'Unselect this instead of deleting accounts.'
                        ),
                        verbose_name='active',
                    ),
                ),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('name', models.CharField(blank=True, max_length=255)),
                (
                    'role',
                    models.CharField(
                        choices=[
                            ('Super Admin', 'Super Admin'),
                            ('Team', 'Team'),
                            ('Client Admin', 'Client Admin'),
                            ('Client Team', 'Client Team'),
                        ],
                        default='Team',
                        max_length=32,
                    ),
                ),
                ('permissions', models.JSONField(blank=True, default=clientdesk.models.empty_list)),
                (
                    'status',
                    models.CharField(
                        choices=[('Active', 'Active'), ('Inactive', 'Inactive')],
                        default='Active',
                        max_length=16,
                    ),
                ),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                (
                    'client',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='users',
                        to='clientdesk.client',
                    ),
                ),
                (
                    'groups',
                    models.ManyToManyField(
                        blank=True,
                        help_text=(
                            'The groups this user belongs to. A user will get all permissions granted to '
                            'each of their groups.'
                        ),
                        related_name='user_set',
                        related_query_name='user',
                        to='auth.group',
                        verbose_name='groups',
                    ),
                ),
                (
                    'user_permissions',
                    models.ManyToManyField(
                        blank=True,
                        help_text='Specific permissions for this user.',
                        related_name='user_set',
                        related_query_name='user',
                        to='auth.permission',
                        verbose_name='user permissions',
                    ),
                ),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(role__in=['Super Admin', 'Team', 'Client Admin', 'Client Team']),
                        name='user_role_valid',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(status__in=['Active', 'Inactive']),
                        name='user_status_valid',
                    ),
                ],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Invoice',
            fields=[
                (
                    'id',
                    models.CharField(
                        default=clientdesk.models.invoice_id,
                        editable=False,
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ('package_name', models.CharField(max_length=255)),
                ('amount', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('paid', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('due', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                (
                    'status',
                    models.CharField(
                        choices=[('Pending', 'Pending'), ('Partial', 'Partial'), ('Paid', 'Paid'), ('Overdue', 'Overdue')],
                        default='Pending',
                        max_length=16,
                    ),
                ),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                (
                    'client',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name='invoices',
                        to='clientdesk.client',
                    ),
                ),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['client', 'status'], name='invoice_client_status_idx')],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(status__in=['Pending', 'Partial', 'Paid', 'Overdue']),
                        name='invoice_status_valid',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                (
                    'id',
                    models.CharField(
                        default=clientdesk.models.payment_id,
                        editable=False,
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ('amount', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('payment_source', models.CharField(default='Online Transfer', max_length=100)),
                (
                    'status',
                    models.CharField(
                        choices=[('Paid', 'Paid'), ('Pending', 'Pending'), ('Failed', 'Failed'), ('Refunded', 'Refunded')],
                        default='Paid',
                        max_length=16,
                    ),
                ),
                ('paid_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('receipt_file_url', models.TextField(blank=True)),
                (
                    'client',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name='payments',
                        to='clientdesk.client',
                    ),
                ),
                (
                    'invoice',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name='payments',
                        to='clientdesk.invoice',
                    ),
                ),
            ],
            options={
                'ordering': ['-paid_at'],
                'indexes': [models.Index(fields=['client', 'status'], name='payment_client_status_idx')],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(status__in=['Paid', 'Pending', 'Failed', 'Refunded']),
                        name='payment_status_valid',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Component',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                (
                    'id',
                    models.CharField(
                        default=clientdesk.models.component_id,
                        editable=False,
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ('name', models.CharField(max_length=255)),
                ('price', models.CharField(blank=True, default='RM 0', max_length=64)),
                ('active', models.BooleanField(default=True)),
                (
                    'client',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name='components',
                        to='clientdesk.client',
                    ),
                ),
                (
                    'invoice',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='components',
                        to='clientdesk.invoice',
                    ),
                ),
            ],
            options={
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='ProgressStep',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                (
                    'id',
                    models.CharField(
                        default=clientdesk.models.progress_step_id,
                        editable=False,
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('deadline', models.DateTimeField()),
                ('completed', models.BooleanField(default=False)),
                ('completed_date', models.DateField(blank=True, null=True)),
                ('important', models.BooleanField(default=False)),
                ('comments', models.JSONField(blank=True, default=clientdesk.models.empty_list)),
                (
                    'client',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name='progress_steps',
                        to='clientdesk.client',
                    ),
                ),
            ],
            options={
                'ordering': ['deadline'],
            },
        ),
        migrations.CreateModel(
            name='CalendarEvent',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                (
                    'id',
                    models.CharField(
                        default=clientdesk.models.calendar_event_id,
                        editable=False,
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ('title', models.CharField(max_length=255)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField()),
                ('start_time', models.TimeField()),
                ('end_time', models.TimeField()),
                ('description', models.TextField(blank=True)),
                (
                    'type',
                    models.CharField(
                        choices=[('meeting', 'Meeting'), ('call', 'Call'), ('deadline', 'Deadline'), ('payment', 'Payment')],
                        default='meeting',
                        max_length=16,
                    ),
                ),
                (
                    'client',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name='calendar_events',
                        to='clientdesk.client',
                    ),
                ),
            ],
            options={
                'ordering': ['start_date', 'start_time'],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(type__in=['meeting', 'call', 'deadline', 'payment']),
                        name='calendar_event_type_valid',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Chat',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('client_name', models.CharField(blank=True, max_length=255)),
                ('avatar', models.CharField(blank=True, max_length=255)),
                ('last_message', models.TextField(blank=True)),
                ('last_message_at', models.DateTimeField(blank=True, null=True)),
                ('unread_count', models.PositiveIntegerField(default=0)),
                ('online', models.BooleanField(default=False)),
                (
                    'client',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name='chats',
                        to='clientdesk.client',
                    ),
                ),
            ],
            options={
                'ordering': ['-last_message_at', '-created_at'],
            },
        ),
        migrations.CreateModel(
            name='ChatMessage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                (
                    'sender',
                    models.CharField(
                        choices=[('client', 'Client'), ('admin', 'Admin'), ('team', 'Team')],
                        max_length=16,
                    ),
                ),
                ('content', models.TextField()),
                (
                    'message_type',
                    models.CharField(
                        choices=[('text', 'Text'), ('image', 'Image'), ('file', 'File')],
                        default='text',
                        max_length=16,
                    ),
                ),
                ('timestamp', models.CharField(blank=True, max_length=64)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                (
                    'chat',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name='messages',
                        to='clientdesk.chat',
                    ),
                ),
            ],
            options={
                'ordering': ['created_at', 'id'],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(sender__in=['client', 'admin', 'team']),
                        name='chat_message_sender_valid',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(message_type__in=['text', 'image', 'file']),
                        name='chat_message_type_valid',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Tag',
            fields=[
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                (
                    'id',
                    models.CharField(
                        default=clientdesk.models.tag_id,
                        editable=False,
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ('name', models.CharField(max_length=100, unique=True)),
                ('color', models.CharField(default='#3B82F6', max_length=16)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
    ]
