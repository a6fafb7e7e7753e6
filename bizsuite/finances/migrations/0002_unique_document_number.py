from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('finances', '0001_initial'),
    ]

    operations = [
        migrations.AddConstraint(
            model_name='transaction',
            constraint=models.UniqueConstraint(
                condition=models.Q(('document_number', ''), _negated=True),
                fields=('business', 'document_number'),
                name='unique_document_number_per_business',
            ),
        ),
    ]
