from django.db import migrations

STOCK_TEMPLATES = [
    {
        'name': 'Modern Shop',
        'description': 'Clean, minimal design for fashion and accessories',
        'preview_url': 'https://images.unsplash.com/photo-1542291026-7eec264c27ff?auto=format&fit=crop&w=500&q=80',
        'category': 'fashion',
        'is_popular': True,
    },
    {
        'name': 'Food & Grocery',
        'description': 'Perfect for food delivery and grocery stores',
        'preview_url': 'https://images.unsplash.com/photo-1555529669-e69e7aa0ba9a?auto=format&fit=crop&w=500&q=80',
        'category': 'food',
        'is_popular': False,
    },
    {
        'name': 'Digital Products',
        'description': 'Optimized for selling digital downloads and services',
        'preview_url': 'https://images.unsplash.com/photo-1470309864661-68328b2cd0a5?auto=format&fit=crop&w=500&q=80',
        'category': 'digital',
        'is_popular': False,
    },
    {
        'name': 'Handmade Crafts',
        'description': 'Showcase your handmade products with this artistic template',
        'preview_url': 'https://images.unsplash.com/photo-1560421683-6856ea585c78?auto=format&fit=crop&w=500&q=80',
        'category': 'handmade',
        'is_popular': False,
    },
    {
        'name': 'Electronics',
        'description': 'Technical specifications and sleek design for electronic products',
        'preview_url': 'https://images.unsplash.com/photo-1550009158-9ebf69173e03?auto=format&fit=crop&w=500&q=80',
        'category': 'electronics',
        'is_popular': True,
    },
]


def seed_templates(apps, schema_editor):
    Template = apps.get_model('storefront', 'Template')
    for data in STOCK_TEMPLATES:
        Template.objects.get_or_create(name=data['name'], defaults=data)


def remove_templates(apps, schema_editor):
    Template = apps.get_model('storefront', 'Template')
    Template.objects.filter(name__in=[t['name'] for t in STOCK_TEMPLATES]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('storefront', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(seed_templates, remove_templates),
    ]
