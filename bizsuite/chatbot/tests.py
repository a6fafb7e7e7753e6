"""
Test suite for the chatbot module
Tests: keyword replies, AI backend with fallback, public chat and ordering,
settings and conversation management
"""
from decimal import Decimal
from unittest import mock

import requests
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient

from bizsuite.chatbot import responder
from bizsuite.chatbot.models import Conversation
from bizsuite.core.models import AuditLog
from bizsuite.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from bizsuite.storefront.models import Order


class RuleBasedReplyTests(TestCase):

    def setUp(self):
        self.business = TestDataFactory.create_business(name='Corner Shop')

    def test_greeting_uses_business_name(self):
        reply = responder.rule_based_reply(self.business, 'Hello there!')
        self.assertIn('Corner Shop', reply['text'])
        self.assertEqual(reply['product_recommendations'], [])

    def test_greeting_uses_welcome_message(self):
        self.business.chatbot_settings = {'welcome_message': 'Welcome back!'}
        self.business.save()
        self.assertEqual(responder.rule_based_reply(self.business, 'hi')['text'], 'Welcome back!')

    def test_greeting_words_match_whole_words_only(self):
        reply = responder.rule_based_reply(self.business, 'this is a thing')
        self.assertEqual(reply['text'], responder.DEFAULT_REPLY)

    def test_product_question_recommends_in_stock_products(self):
        TestDataFactory.create_product(self.business, name='Lamp', price=Decimal('30.00'))
        TestDataFactory.create_product(self.business, name='Desk', in_stock=False)
        reply = responder.rule_based_reply(self.business, 'Can you recommend a product?')
        self.assertEqual([p['name'] for p in reply['product_recommendations']], ['Lamp'])
        self.assertEqual(reply['product_recommendations'][0]['price'], '30.00')

    def test_recommendations_limited_to_two(self):
        for _ in range(4):
            TestDataFactory.create_product(self.business)
        reply = responder.rule_based_reply(self.business, 'I want to buy something')
        self.assertEqual(len(reply['product_recommendations']), 2)

    def test_recommendations_disabled(self):
        TestDataFactory.create_product(self.business)
        self.business.chatbot_settings = {'enable_recommendations': False}
        self.business.save()
        reply = responder.rule_based_reply(self.business, 'show me products')
        self.assertEqual(reply['product_recommendations'], [])
        self.assertIn("don't have products", reply['text'])

    def test_order_status(self):
        reply = responder.rule_based_reply(self.business, 'What is my order status?')
        self.assertEqual(reply['text'], responder.ORDER_STATUS_REPLY)

    def test_shipping_and_returns(self):
        self.assertEqual(responder.rule_based_reply(self.business, 'How long is delivery?')['text'],
                         responder.SHIPPING_REPLY)
        self.assertEqual(responder.rule_based_reply(self.business, 'Can I get a refund')['text'],
                         responder.RETURN_REPLY)

    def test_default_reply(self):
        reply = responder.rule_based_reply(self.business, 'What is the meaning of life')
        self.assertEqual(reply['text'], responder.DEFAULT_REPLY)


class AIReplyTests(TestCase):

    def setUp(self):
        self.business = TestDataFactory.create_business()

    @override_settings(CHATBOT_AI_API_KEY='')
    def test_rules_used_without_api_key(self):
        with mock.patch('bizsuite.chatbot.responder.requests.post') as post:
            reply = responder.generate_reply(self.business, 'hello')
        post.assert_not_called()
        self.assertIn(self.business.name, reply['text'])

    @override_settings(CHATBOT_AI_API_KEY='test-key')
    def test_ai_reply_parsed(self):
        fake = mock.Mock()
        fake.json.return_value = {'candidates': [{'content': {'parts': [{'text': ' We open at 9. '}]}}]}
        history = [{'role': 'user', 'content': 'hi'}, {'role': 'assistant', 'content': 'Hello!'}]
        with mock.patch('bizsuite.chatbot.responder.requests.post', return_value=fake) as post:
            reply = responder.generate_reply(self.business, 'When do you open?', history)

        self.assertEqual(reply, {'text': 'We open at 9.', 'product_recommendations': []})
        payload = post.call_args.kwargs['json']
        self.assertEqual([c['role'] for c in payload['contents']], ['user', 'user', 'model', 'user'])
        self.assertEqual(post.call_args.kwargs['params'], {'key': 'test-key'})

    @override_settings(CHATBOT_AI_API_KEY='test-key')
    def test_falls_back_on_request_error(self):
        with mock.patch('bizsuite.chatbot.responder.requests.post',
                        side_effect=requests.exceptions.ConnectionError('down')):
            reply = responder.generate_reply(self.business, 'shipping?')
        self.assertEqual(reply['text'], responder.SHIPPING_REPLY)

    @override_settings(CHATBOT_AI_API_KEY='test-key')
    def test_falls_back_on_malformed_response(self):
        fake = mock.Mock()
        fake.json.return_value = {'candidates': []}
        with mock.patch('bizsuite.chatbot.responder.requests.post', return_value=fake):
            reply = responder.generate_reply(self.business, 'anything else')
        self.assertEqual(reply['text'], responder.DEFAULT_REPLY)


@override_settings(CHATBOT_AI_API_KEY='')
class ChatAPITests(TestCase):
    """Public widget endpoints"""

    def setUp(self):
        self.business = TestDataFactory.create_business()
        self.client = APIClient()
        self.url = f'/api/v1/chatbot/{self.business.id}/chat/'

    def test_chat_starts_conversation(self):
        response = self.client.post(self.url, {'message': 'hello', 'customer_name': 'Ann'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message']['role'], 'assistant')

        conversation = Conversation.objects.get(pk=response.data['conversation_id'])
        self.assertEqual(conversation.customer_name, 'Ann')
        self.assertEqual([m['role'] for m in conversation.messages], ['user', 'assistant'])
        self.assertIn('timestamp', conversation.messages[0])

    def test_chat_continues_conversation(self):
        conversation_id = self.client.post(self.url, {'message': 'hello'}, format='json').data['conversation_id']
        response = self.client.post(self.url, {'message': 'shipping?', 'conversation_id': conversation_id}, format='json')
        self.assertEqual(response.data['conversation_id'], conversation_id)
        self.assertEqual(len(Conversation.objects.get(pk=conversation_id).messages), 4)

    def test_conversation_of_other_business_not_found(self):
        foreign = TestDataFactory.create_conversation(TestDataFactory.create_business())
        response = self.client.post(self.url, {'message': 'hi', 'conversation_id': foreign.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_empty_message_rejected(self):
        response = self.client.post(self.url, {'message': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Invalid data')

    def test_unknown_business(self):
        response = self.client.post('/api/v1/chatbot/999999/chat/', {'message': 'hi'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_chatbot_order(self):
        product = TestDataFactory.create_product(self.business, price=Decimal('12.50'))
        conversation = TestDataFactory.create_conversation(self.business)
        data = {
            'customer_name': 'Ann',
            'customer_email': 'ann@example.com',
            'items': [{'product_id': product.id, 'quantity': 2}],
            'conversation_id': conversation.id,
        }
        response = self.client.post(f'/api/v1/chatbot/{self.business.id}/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['from_chatbot'])
        self.assertEqual(Decimal(str(response.data['total'])), Decimal('25.00'))

        conversation.refresh_from_db()
        self.assertIn(f"#{response.data['id']}", conversation.messages[-1]['content'])
        self.assertTrue(AuditLog.objects.filter(business=self.business, action='order_create').exists())

    def test_chatbot_order_disabled(self):
        self.business.chatbot_settings = {'allow_order_creation': False}
        self.business.save()
        product = TestDataFactory.create_product(self.business)
        data = {'customer_name': 'Ann', 'customer_email': 'ann@example.com', 'items': [{'product_id': product.id}]}
        response = self.client.post(f'/api/v1/chatbot/{self.business.id}/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Order.objects.exists())

    def test_widget_embed_code(self):
        response = self.client.get(f'/api/v1/chatbot/widget/{self.business.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(f"/api/v1/chatbot/{self.business.id}/chat/", response.data['embed_code'])
        self.assertIn('bottomRight', response.data['embed_code'])


class ChatbotManagementTests(TestCase):
    """Settings and conversations for the signed-in business"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = self.user.business
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_settings_defaults(self):
        response = self.client.get('/api/v1/chatbot/settings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'ShopAssist')
        self.assertTrue(response.data['allow_order_creation'])

    def test_settings_patch_merges(self):
        self.business.chatbot_settings = {'name': 'Helper', 'custom_key': 'kept'}
        self.business.save()
        response = self.client.patch('/api/v1/chatbot/settings/', {'widget_position': 'bottomLeft'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['settings']['name'], 'Helper')
        self.assertEqual(response.data['settings']['widget_position'], 'bottomLeft')

        self.business.refresh_from_db()
        self.assertEqual(self.business.chatbot_settings['custom_key'], 'kept')

    def test_settings_invalid_position(self):
        response = self.client.patch('/api/v1/chatbot/settings/', {'widget_position': 'top'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_conversation_list_is_scoped_and_searchable(self):
        TestDataFactory.create_conversation(self.business, customer_name='Ann')
        TestDataFactory.create_conversation(self.business, customer_name='Bob')
        TestDataFactory.create_conversation(TestDataFactory.create_business(), customer_name='Ann')

        response = self.client.get('/api/v1/conversations/')
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/v1/conversations/?search=ann')
        self.assertEqual([c['customer_name'] for c in response.data], ['Ann'])

    def test_create_conversation_validates_messages(self):
        response = self.client.post('/api/v1/conversations/', {'messages': [{'role': 'user'}]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        data = {'customer_name': 'Ann', 'messages': [{'role': 'user', 'content': 'hi'}]}
        response = self.client.post('/api/v1/conversations/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message_count'], 1)

    def test_other_business_conversation_is_forbidden(self):
        conversation = TestDataFactory.create_conversation(TestDataFactory.create_business())
        response = self.client.get(f'/api/v1/conversations/{conversation.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
