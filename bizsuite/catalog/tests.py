"""
Test suite for the catalog module
Tests: product CRUD, validation, filtering, product categories and the default category command
"""
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from bizsuite.catalog.models import Product, ProductCategory, DEFAULT_CATEGORY_NAME
from bizsuite.core.models import AuditLog
from bizsuite.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ProductModelTests(TestCase):

    def setUp(self):
        self.business = TestDataFactory.create_business()

    def test_effective_price_uses_sale_price_only_when_on_sale(self):
        product = TestDataFactory.create_product(self.business, price=Decimal('100.00'), sale_price=Decimal('80.00'))
        self.assertEqual(product.effective_price, Decimal('100.00'))
        product.is_on_sale = True
        self.assertEqual(product.effective_price, Decimal('80.00'))

    def test_default_category_is_created_once(self):
        first = ProductCategory.objects.default_for(self.business)
        second = ProductCategory.objects.default_for(self.business)
        self.assertEqual(first.pk, second.pk)
        self.assertTrue(first.is_default)
        self.assertEqual(first.name, DEFAULT_CATEGORY_NAME)


class ProductAPITests(TestCase):
    """Test Product API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = self.user.business
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def product_payload(self, **overrides):
        data = {
            'name': 'Linen Shirt',
            'description': 'A breathable linen shirt for summer',
            'price': '49.99',
            'inventory': 10,
        }
        data.update(overrides)
        return data

    def test_create_product(self):
        response = self.client.post('/api/v1/products/', self.product_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        product = Product.objects.get(pk=response.data['id'])
        self.assertEqual(product.business, self.business)
        self.assertTrue(AuditLog.objects.filter(model_name='Product', action='create').exists())

    def test_create_product_validation(self):
        response = self.client.post('/api/v1/products/', self.product_payload(name='A', description='short'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)
        self.assertIn('description', response.data)

    def test_negative_price_rejected(self):
        response = self.client.post('/api/v1/products/', self.product_payload(price='-1'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('price', response.data)

    def test_on_sale_requires_sale_price(self):
        response = self.client.post('/api/v1/products/', self.product_payload(is_on_sale=True), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('sale_price', response.data)

    def test_sale_price_above_price_rejected(self):
        payload = self.product_payload(is_on_sale=True, sale_price='60.00')
        response = self.client.post('/api/v1/products/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_tags_string_is_split(self):
        response = self.client.post('/api/v1/products/', self.product_payload(tags='summer, linen ,,shirt'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['tags'], ['summer', 'linen', 'shirt'])

    def test_variants_get_ids_and_flag(self):
        payload = self.product_payload(variants=[{'name': 'Small', 'attributes': {'size': 'S'}, 'inventory': 3}])
        response = self.client.post('/api/v1/products/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['has_variants'])
        self.assertTrue(response.data['variants'][0]['id'])

    def test_invalid_variant_rejected(self):
        payload = self.product_payload(variants=[{'attributes': {'size': 'S'}}])
        response = self.client.post('/api/v1/products/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('variants', response.data)

    def test_category_from_other_business_rejected(self):
        other = TestDataFactory.create_business()
        foreign_category = TestDataFactory.create_product_category(other)
        response = self.client.post(
            '/api/v1/products/', self.product_payload(category_id=foreign_category.id), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('category_id', response.data)

    def test_list_is_scoped_and_filterable(self):
        TestDataFactory.create_product(self.business, name='Blue Mug', in_stock=True)
        TestDataFactory.create_product(self.business, name='Red Mug', in_stock=False)
        TestDataFactory.create_product(TestDataFactory.create_business(), name='Foreign Mug')

        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/v1/products/?search=blue')
        self.assertEqual([p['name'] for p in response.data], ['Blue Mug'])

        response = self.client.get('/api/v1/products/?in_stock=false')
        self.assertEqual([p['name'] for p in response.data], ['Red Mug'])

    def test_featured_products_listed_first(self):
        TestDataFactory.create_product(self.business, name='Plain')
        TestDataFactory.create_product(self.business, name='Star', is_featured=True)
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.data[0]['name'], 'Star')

    def test_update_product(self):
        product = TestDataFactory.create_product(self.business)
        response = self.client.patch(f'/api/v1/products/{product.id}/', {'price': '75.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertEqual(product.price, Decimal('75.00'))

    def test_delete_product(self):
        product = TestDataFactory.create_product(self.business)
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(pk=product.pk).exists())

    def test_other_business_product_is_forbidden(self):
        product = TestDataFactory.create_product(TestDataFactory.create_business())
        response = self.client.get(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_missing_product_is_not_found(self):
        response = self.client.get('/api/v1/products/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class ProductCategoryAPITests(TestCase):
    """Product categories and the default fallback category"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.business = self.user.business
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_category(self):
        response = self.client.post('/api/v1/product-categories/', {'name': 'Shoes'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['is_default'])

    def test_duplicate_name_rejected_case_insensitive(self):
        TestDataFactory.create_product_category(self.business, name='Shoes')
        response = self.client.post('/api/v1/product-categories/', {'name': 'shoes'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_same_name_allowed_in_other_business(self):
        TestDataFactory.create_product_category(TestDataFactory.create_business(), name='Shoes')
        response = self.client.post('/api/v1/product-categories/', {'name': 'Shoes'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_list_includes_product_count(self):
        category = TestDataFactory.create_product_category(self.business, name='Hats')
        TestDataFactory.create_product(self.business, category=category)
        response = self.client.get('/api/v1/product-categories/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['product_count'], 1)

    def test_delete_moves_products_to_default(self):
        category = TestDataFactory.create_product_category(self.business, name='Hats')
        product = TestDataFactory.create_product(self.business, category=category)

        response = self.client.delete(f'/api/v1/product-categories/{category.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

        product.refresh_from_db()
        self.assertEqual(product.category.name, DEFAULT_CATEGORY_NAME)
        self.assertTrue(product.category.is_default)

    def test_default_category_cannot_be_deleted_or_renamed(self):
        default = ProductCategory.objects.default_for(self.business)
        response = self.client.delete(f'/api/v1/product-categories/{default.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.patch(f'/api/v1/product-categories/{default.id}/', {'name': 'Misc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AssignDefaultCategoriesCommandTests(TestCase):

    def setUp(self):
        self.business = TestDataFactory.create_business()
        self.loose = TestDataFactory.create_product(self.business)
        self.categorized = TestDataFactory.create_product(
            self.business, category=TestDataFactory.create_product_category(self.business, name='Kept')
        )

    def test_assigns_uncategorized_products(self):
        out = StringIO()
        call_command('assign_default_product_categories', stdout=out)
        self.loose.refresh_from_db()
        self.categorized.refresh_from_db()
        self.assertEqual(self.loose.category.name, DEFAULT_CATEGORY_NAME)
        self.assertEqual(self.categorized.category.name, 'Kept')
        self.assertIn('assigned 1 product(s)', out.getvalue())

    def test_dry_run_changes_nothing(self):
        out = StringIO()
        call_command('assign_default_product_categories', '--dry-run', stdout=out)
        self.loose.refresh_from_db()
        self.assertIsNone(self.loose.category)
        self.assertFalse(ProductCategory.objects.filter(business=self.business, is_default=True).exists())
        self.assertIn('would be assigned', out.getvalue())
