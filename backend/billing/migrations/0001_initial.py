from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('bookings', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Charge',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('FREIGHT', 'Freight'), ('TRUCKING', 'Trucking'), ('PORT', 'Port'), ('MISC', 'Misc')], max_length=10)),
                ('subtype', models.CharField(blank=True, max_length=32, null=True)),
                ('amount', models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ('payee', models.CharField(blank=True, max_length=255, null=True)),
                ('check_date', models.DateField(blank=True, null=True)),
                ('voucher', models.CharField(blank=True, max_length=100, null=True)),
                ('is_paid', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('booking', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='charges', to='bookings.booking')),
            ],
            options={
                'ordering': ['id'],
                'indexes': [models.Index(fields=['booking', 'kind', 'subtype'], name='billing_charge_kind_idx')],
            },
        ),
        migrations.CreateModel(
            name='Receivable',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('total_expenses', models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ('total_payment', models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ('amount_collected', models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ('collectible_amount', models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ('payment_method', models.CharField(blank=True, choices=[('COD', 'Cod'), ('GCASH', 'Gcash')], max_length=10, null=True)),
                ('is_paid', models.BooleanField(default=False)),
                ('cod_pending', models.BooleanField(default=False)),
                ('due_date', models.DateField(blank=True, null=True)),
                ('state', models.CharField(choices=[('NO_CHARGES', 'No Charges'), ('READY_FOR_PAYMENT', 'Ready For Payment'), ('PAYMENT_SENT', 'Payment Sent'), ('COD_PENDING', 'Cod Pending'), ('GCASH_PENDING_VERIFICATION', 'Gcash Pending Verification'), ('REJECTED', 'Rejected'), ('PAID', 'Paid')], default='NO_CHARGES', max_length=32)),
                ('price_lines', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('booking', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='receivable', to='bookings.booking')),
            ],
            options={
                'indexes': [
                    models.Index(fields=['state'], name='billing_ar_state_idx'),
                    models.Index(fields=['is_paid', 'due_date'], name='billing_ar_paid_due_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PaymentAttempt',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('method', models.CharField(choices=[('COD', 'Cod'), ('GCASH', 'Gcash')], max_length=10)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=18)),
                ('reference_number', models.CharField(blank=True, max_length=100, null=True)),
                ('receipt_image', models.CharField(blank=True, max_length=500, null=True)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('VERIFIED', 'Verified'), ('REJECTED', 'Rejected')], default='PENDING', max_length=10)),
                ('admin_notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('booking', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payment_attempts', to='bookings.booking')),
                ('submitted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['booking', '-created_at'], name='billing_attempt_booking_idx')],
            },
        ),
    ]
