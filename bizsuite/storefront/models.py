from decimal import Decimal

from django.db import models


class Template(models.Model):
    """Website template shared by every business"""
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    preview_url = models.URLField(blank=True)
    category = models.CharField(max_length=50, db_index=True)
    is_popular = models.BooleanField(default=False)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'templates'
        ordering = ['-is_popular', 'name']


class Website(models.Model):
    """A business's storefront built from a template"""
    business = models.ForeignKey('core.Business', on_delete=models.CASCADE, related_name='websites')
    template = models.ForeignKey(Template, on_delete=models.PROTECT, related_name='websites')
    name = models.CharField(max_length=200)
    customizations = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'websites'
        ordering = ['-created_at']


class Order(models.Model):
    """Customer order from the storefront or the chatbot"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('processing', 'Processing'),
        ('shipped', 'Shipped'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    business = models.ForeignKey('core.Business', on_delete=models.CASCADE, related_name='orders')
    customer_name = models.CharField(max_length=200)
    customer_email = models.EmailField()
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    # [{product_id, name, quantity, price}]
    items = models.JSONField(default=list)
    from_chatbot = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Order #{self.pk}"

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
