from django.db import models


class Conversation(models.Model):
    """Chat between a storefront visitor and the business's assistant"""
    business = models.ForeignKey('core.Business', on_delete=models.CASCADE, related_name='conversations')
    customer_name = models.CharField(max_length=200, default='Guest')
    customer_email = models.EmailField(blank=True)
    # [{role, content, timestamp, product_recommendations?}]
    messages = models.JSONField(default=list)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Conversation #{self.pk} ({self.customer_name})"

    class Meta:
        db_table = 'conversations'
        ordering = ['-updated_at']
