import bookings.models
import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('trains', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Booking',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('pnr', models.CharField(default=bookings.models.generate_pnr, max_length=16, unique=True)),
                ('journey_date', models.DateField()),
                ('num_passengers', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('status', models.CharField(choices=[('confirmed', 'Confirmed'), ('waiting', 'Waiting'), ('cancelled', 'Cancelled')], max_length=10)),
                ('seat_numbers', models.JSONField(blank=True, default=list)),
                ('booking_date', models.DateTimeField(auto_now_add=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('train', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='bookings', to='trains.train')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='bookings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bookings',
                'ordering': ['-booking_date'],
                'indexes': [
                    models.Index(fields=['train', 'journey_date', 'status'], name='bookings_pool_status_idx'),
                    models.Index(fields=['user', 'booking_date'], name='bookings_user_date_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Passenger',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('age', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(120)])),
                ('gender', models.CharField(choices=[('M', 'Male'), ('F', 'Female'), ('O', 'Other')], max_length=1)),
                ('seat_number', models.CharField(blank=True, max_length=10, null=True)),
                ('status', models.CharField(choices=[('confirmed', 'Confirmed'), ('waiting', 'Waiting')], max_length=10)),
                ('booking', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='passengers', to='bookings.booking')),
            ],
            options={
                'db_table': 'passengers',
                'ordering': ['booking', 'id'],
            },
        ),
        migrations.CreateModel(
            name='CapacityPool',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('journey_date', models.DateField()),
                ('version', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('train', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='capacity_pools', to='trains.train')),
            ],
            options={
                'db_table': 'capacity_pools',
                'constraints': [models.UniqueConstraint(fields=('train', 'journey_date'), name='capacity_pools_train_date_uniq')],
            },
        ),
    ]
