from django.urls import path
from . import views

urlpatterns = [
    path('reports/cash-flow/', views.cash_flow, name='cash-flow'),
    path('reports/profit-loss/', views.profit_loss, name='profit-loss'),
    path('reports/balance-sheet/', views.balance_sheet, name='balance-sheet'),
    path('reports/bills-summary/', views.bills_summary, name='bills-summary'),
    path('reports/dashboard/', views.dashboard, name='dashboard'),
]
