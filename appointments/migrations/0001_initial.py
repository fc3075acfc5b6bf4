# appointments/migrations/0001_initial.py
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('patients', '0001_initial'),
        ('services', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='DentistSchedule',
            fields=[
                ('id', models.AutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('dentist_code', models.CharField(blank=True, max_length=20)),
                ('dentist_name', models.CharField(max_length=100)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('employment_type', models.CharField(choices=[('full_time', 'Full Time'), ('part_time', 'Part Time'), ('locum', 'Locum')], default='full_time', max_length=20)),
                ('contract_end_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive')], default='active', max_length=10)),
                ('mon', models.BooleanField(default=True)),
                ('tue', models.BooleanField(default=True)),
                ('wed', models.BooleanField(default=True)),
                ('thu', models.BooleanField(default=True)),
                ('fri', models.BooleanField(default=True)),
                ('sat', models.BooleanField(default=False)),
                ('sun', models.BooleanField(default=False)),
                ('mon_start_time', models.TimeField(blank=True, null=True)),
                ('mon_end_time', models.TimeField(blank=True, null=True)),
                ('tue_start_time', models.TimeField(blank=True, null=True)),
                ('tue_end_time', models.TimeField(blank=True, null=True)),
                ('wed_start_time', models.TimeField(blank=True, null=True)),
                ('wed_end_time', models.TimeField(blank=True, null=True)),
                ('thu_start_time', models.TimeField(blank=True, null=True)),
                ('thu_end_time', models.TimeField(blank=True, null=True)),
                ('fri_start_time', models.TimeField(blank=True, null=True)),
                ('fri_end_time', models.TimeField(blank=True, null=True)),
                ('sat_start_time', models.TimeField(blank=True, null=True)),
                ('sat_end_time', models.TimeField(blank=True, null=True)),
                ('sun_start_time', models.TimeField(blank=True, null=True)),
                ('sun_end_time', models.TimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['dentist_code', 'id'],
                'indexes': [
                    models.Index(fields=['status'], name='dentist_sched_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Appointment',
            fields=[
                ('id', models.AutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('honor_preferred_dentist', models.BooleanField(default=False)),
                ('date', models.DateField()),
                ('time_slot', models.CharField(help_text='HH:MM-HH:MM', max_length=11)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('cancelled', 'Cancelled'), ('did_not_arrive', 'Did Not Arrive'), ('completed', 'Completed')], default='pending', max_length=20)),
                ('reason', models.TextField(blank=True)),
                ('requested_at', models.DateTimeField(auto_now_add=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('dentist_schedule', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='appointments', to='appointments.dentistschedule')),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='appointments', to='patients.patient')),
                ('service', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, to='services.service')),
            ],
            options={
                'ordering': ['date', 'time_slot'],
                'indexes': [
                    models.Index(fields=['date', 'status'], name='appt_date_status_idx'),
                    models.Index(fields=['patient', 'date'], name='appt_patient_date_idx'),
                ],
            },
        ),
    ]
