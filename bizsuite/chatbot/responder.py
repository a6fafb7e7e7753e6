"""
Reply generation for the storefront assistant.

Keyword rules answer the common questions. When ``CHATBOT_AI_API_KEY`` is set
the reply comes from the configured AI endpoint instead; any failure there
falls back to the rules so a visitor always gets an answer.
"""
import logging
import re

import requests
from django.conf import settings

from bizsuite.catalog.models import Product

logger = logging.getLogger(__name__)

DEFAULT_CHATBOT_SETTINGS = {
    'name': 'ShopAssist',
    'welcome_message': '',
    'enable_recommendations': True,
    'allow_order_creation': True,
    'enable_order_tracking': True,
    'widget_position': 'bottomRight',
}

RECOMMENDATION_LIMIT = 2
HISTORY_LIMIT = 10

GREETING_WORDS = {'hello', 'hi', 'hey'}
PRODUCT_WORDS = {'product', 'products', 'buy', 'purchase', 'recommend'}
SHIPPING_WORDS = {'shipping', 'delivery', 'ship'}
RETURN_WORDS = {'return', 'returns', 'refund', 'refunds'}

SHIPPING_REPLY = ("We offer standard shipping (3-5 business days) and express shipping "
                  "(1-2 business days). Free shipping on orders over $50!")
RETURN_REPLY = ("Our return policy allows returns within 30 days of purchase. "
                "Would you like more details about our return process?")
ORDER_STATUS_REPLY = ("You can check your order status in your account. "
                      "Would you like me to help you navigate there?")
DEFAULT_REPLY = "Thank you for your message. How else can I assist you today?"


def get_chatbot_settings(business):
    """Business settings layered over the defaults"""
    stored = business.chatbot_settings if isinstance(business.chatbot_settings, dict) else {}
    return {**DEFAULT_CHATBOT_SETTINGS, **stored}


def _words(message):
    return set(re.findall(r"[a-z']+", message.lower()))


def recommend_products(business, limit=RECOMMENDATION_LIMIT):
    products = Product.objects.filter(business=business, in_stock=True)[:limit]
    return [
        {'id': p.id, 'name': p.name, 'price': str(p.effective_price), 'image_url': p.image_url}
        for p in products
    ]


def rule_based_reply(business, message):
    """Answer from keyword rules; returns ``{text, product_recommendations}``"""
    chatbot_settings = get_chatbot_settings(business)
    words = _words(message)

    if words & GREETING_WORDS:
        text = chatbot_settings.get('welcome_message') or \
            f"Hi there! Welcome to {business.name}. How can I help you today?"
        return {'text': text, 'product_recommendations': []}

    if words & PRODUCT_WORDS:
        recommendations = recommend_products(business) if chatbot_settings.get('enable_recommendations') else []
        if recommendations:
            return {'text': 'Here are some products that might interest you:', 'product_recommendations': recommendations}
        return {'text': "We don't have products to recommend right now. Is there anything else I can help with?",
                'product_recommendations': []}

    if 'order' in words and 'status' in words and chatbot_settings.get('enable_order_tracking'):
        return {'text': ORDER_STATUS_REPLY, 'product_recommendations': []}

    if words & SHIPPING_WORDS:
        return {'text': SHIPPING_REPLY, 'product_recommendations': []}

    if words & RETURN_WORDS:
        return {'text': RETURN_REPLY, 'product_recommendations': []}

    return {'text': DEFAULT_REPLY, 'product_recommendations': []}


def build_ai_payload(business, message, history):
    chatbot_settings = get_chatbot_settings(business)
    catalog = ', '.join(
        f"{p.name} ({p.effective_price})"
        for p in Product.objects.filter(business=business, in_stock=True)[:20]
    )
    instructions = (
        f"You are {chatbot_settings['name']}, the shopping assistant of {business.name}. "
        f"Answer briefly and only about this store. Products in stock: {catalog or 'none'}."
    )
    contents = [{'role': 'user', 'parts': [{'text': instructions}]}]
    for entry in history[-HISTORY_LIMIT:]:
        role = 'model' if entry.get('role') == 'assistant' else 'user'
        contents.append({'role': role, 'parts': [{'text': str(entry.get('content', ''))}]})
    contents.append({'role': 'user', 'parts': [{'text': message}]})
    return {'contents': contents}


def ai_reply(business, message, history):
    """Ask the AI endpoint; raises on transport or payload errors"""
    response = requests.post(
        settings.CHATBOT_AI_URL,
        params={'key': settings.CHATBOT_AI_API_KEY},
        json=build_ai_payload(business, message, history),
        headers={'Content-Type': 'application/json'},
        timeout=getattr(settings, 'CHATBOT_AI_TIMEOUT', 10),
    )
    response.raise_for_status()
    data = response.json()
    text = data['candidates'][0]['content']['parts'][0]['text'].strip()
    if not text:
        raise ValueError('Empty reply from AI backend')
    return {'text': text, 'product_recommendations': []}


def generate_reply(business, message, history=None):
    """Reply to ``message`` given the prior conversation ``history``"""
    history = history or []
    if getattr(settings, 'CHATBOT_AI_API_KEY', ''):
        try:
            return ai_reply(business, message, history)
        except requests.exceptions.RequestException as e:
            logger.warning(f"AI chat request failed for business {business.id}, using rules: {str(e)}")
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Unexpected AI chat response for business {business.id}, using rules: {str(e)}")
    return rule_based_reply(business, message)
