from django.urls import path
from .views import (
    chat, chatbot_order, chatbot_widget, chatbot_settings,
    conversation_list_create, conversation_detail,
)

urlpatterns = [
    path('chatbot/settings/', chatbot_settings, name='chatbot-settings'),
    path('chatbot/widget/<int:business_id>/', chatbot_widget, name='chatbot-widget'),
    path('chatbot/<int:business_id>/chat/', chat, name='chatbot-chat'),
    path('chatbot/<int:business_id>/orders/', chatbot_order, name='chatbot-order'),
    path('conversations/', conversation_list_create, name='conversation-list-create'),
    path('conversations/<int:pk>/', conversation_detail, name='conversation-detail'),
]
