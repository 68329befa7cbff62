# Generated migration for promotions engine models

import uuid
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='PromotionRecord',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(help_text='Internal promotion name', max_length=100)),
                ('promotion_code', models.CharField(blank=True, help_text='Coupon code (uppercase)', max_length=50, null=True, unique=True)),
                ('description', models.TextField(blank=True, help_text='Description shown to customers')),
                ('promotion_type', models.CharField(choices=[('order_discount', 'Order Discount'), ('item_discount', 'Item Discount')], default='order_discount', max_length=20)),
                ('discount_type', models.CharField(choices=[('percentage', 'Percentage'), ('fixed_amount', 'Fixed Amount')], default='percentage', max_length=20)),
                ('discount_percent', models.DecimalField(blank=True, decimal_places=4, help_text='Discount rate as a fraction (0.2000 = 20%)', max_digits=7, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(1)])),
                ('discount_amount_cents', models.BigIntegerField(blank=True, help_text='Fixed discount amount in cents', null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100000000)])),
                ('currency', models.CharField(blank=True, help_text='Currency of the fixed amount', max_length=3)),
                ('minimum_order_cents', models.BigIntegerField(blank=True, help_text='Minimum order subtotal in cents', null=True, validators=[django.core.validators.MinValueValidator(0)])),
                ('maximum_discount_cents', models.BigIntegerField(blank=True, help_text='Maximum discount per order in cents', null=True, validators=[django.core.validators.MinValueValidator(0)])),
                ('starts_at', models.DateTimeField(blank=True, help_text='When promotion starts (null = immediately)', null=True)),
                ('expires_at', models.DateTimeField(blank=True, help_text='When promotion ends (null = never)', null=True)),
                ('usage_limit', models.PositiveIntegerField(blank=True, help_text='Maximum redemptions (null = unlimited)', null=True, validators=[django.core.validators.MaxValueValidator(1000000)])),
                ('usage_count', models.PositiveIntegerField(default=0, help_text='Current redemption count')),
                ('active', models.BooleanField(default=True, help_text='Master switch for promotion')),
                ('requires_coupon_code', models.BooleanField(default=False)),
                ('rules_match_policy', models.CharField(choices=[('all', 'All rules must match'), ('any', 'Any rule may match')], default='all', max_length=10)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'verbose_name': 'Promotion',
                'verbose_name_plural': 'Promotions',
                'db_table': 'promotions',
                'ordering': ('-created_at',),
                'indexes': [
                    models.Index(fields=['active', 'starts_at', 'expires_at'], name='idx_promotion_window'),
                    models.Index(fields=['requires_coupon_code', 'active'], name='idx_promotion_coupon'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PromotionRuleRecord',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('rule_type', models.CharField(choices=[('first_order', 'First Order'), ('minimum_order_amount', 'Minimum Order Amount'), ('minimum_quantity', 'Minimum Quantity'), ('customer_group', 'Customer Group'), ('customer', 'Customer'), ('product_in_list', 'Product In List'), ('product_exclude', 'Product Exclude'), ('category_include', 'Category Include'), ('category_exclude', 'Category Exclude'), ('product_property', 'Product Property')], max_length=30)),
                ('value', models.CharField(max_length=1000)),
                ('property_name', models.CharField(blank=True, max_length=100)),
                ('position', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(blank=True, null=True)),
                ('promotion', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rules', to='promotions.promotionrecord')),
            ],
            options={
                'verbose_name': 'Promotion Rule',
                'verbose_name_plural': 'Promotion Rules',
                'db_table': 'promotion_rules',
                'ordering': ('promotion', 'position'),
            },
        ),
        migrations.CreateModel(
            name='PromotionAuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('action', models.CharField(choices=[('created', 'Created'), ('updated', 'Updated'), ('activated', 'Activated'), ('deactivated', 'Deactivated'), ('rule_added', 'Rule Added'), ('rule_removed', 'Rule Removed'), ('rule_updated', 'Rule Updated'), ('usage_increased', 'Usage Increased'), ('used', 'Used')], max_length=20)),
                ('description', models.TextField(blank=True)),
                ('actor', models.CharField(blank=True, help_text='User or system component', max_length=255)),
                ('order_id', models.CharField(blank=True, max_length=64)),
                ('discount_cents', models.BigIntegerField(default=0)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('promotion', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='audit_entries', to='promotions.promotionrecord')),
            ],
            options={
                'verbose_name': 'Promotion Audit Entry',
                'verbose_name_plural': 'Promotion Audit Entries',
                'db_table': 'promotion_audit_log',
                'ordering': ('created_at',),
                'indexes': [
                    models.Index(fields=['promotion', 'action'], name='idx_promo_audit_action'),
                ],
            },
        ),
    ]
