"""
Serializers for order events on the wire.

Inbound payloads use camelCase keys; each serializer maps its own keys to
snake_case before validation (nested ``extras`` keys are left alone). Outbound
payloads are rendered back to camelCase.
"""

import re

from rest_framework import serializers

from core_backend.config import app_settings

from .snapshots import OrderItemSnapshot, OrderSnapshot, OrderStatus, OrderType

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def to_snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def to_camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def build_snapshot(validated_data) -> OrderSnapshot:
    data = dict(validated_data)
    items = tuple(OrderItemSnapshot(**item) for item in data.pop("items", []))
    return OrderSnapshot(items=items, **data)


class CamelCaseInputMixin:
    """Accept camelCase keys at this serializer's level."""

    def to_internal_value(self, data):
        if isinstance(data, dict):
            data = {to_snake(key): value for key, value in data.items()}
        return super().to_internal_value(data)


class OrderItemSnapshotSerializer(CamelCaseInputMixin, serializers.Serializer):
    id = serializers.CharField()
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=None, decimal_places=None)
    menu_item_id = serializers.CharField(required=False, allow_null=True)
    name = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    name_ar = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    discount = serializers.DecimalField(max_digits=None, decimal_places=None, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    extras = serializers.DictField(required=False, allow_null=True)
    is_custom_item = serializers.BooleanField(required=False, default=False)
    is_new = serializers.BooleanField(required=False, default=False)
    is_modified = serializers.BooleanField(required=False, default=False)

    def to_internal_value(self, data):
        # The API nests the menu row: {"menuItem": {"id": ...}}
        if isinstance(data, dict) and "menuItemId" not in data and isinstance(data.get("menuItem"), dict):
            data = {**data, "menuItemId": data["menuItem"].get("id")}
            data.pop("menuItem")
        return super().to_internal_value(data)


class OrderSnapshotSerializer(CamelCaseInputMixin, serializers.Serializer):
    """
    Validates an order as pushed by the server and builds an OrderSnapshot.

    Usage:
        serializer = OrderSnapshotSerializer(data=payload["order"])
        serializer.is_valid(raise_exception=True)
        snapshot = serializer.to_snapshot()
    """

    id = serializers.CharField()
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    order_type = serializers.ChoiceField(choices=OrderType.choices, required=False, default=OrderType.DINE_IN)
    items = OrderItemSnapshotSerializer(many=True, required=False, default=list)
    total_price = serializers.DecimalField(max_digits=None, decimal_places=None)
    currency = serializers.CharField(required=False, allow_blank=True, default="")
    table_number = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    restaurant_id = serializers.CharField(required=False, allow_null=True)
    customer_name = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    customer_phone = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    customer_address = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    created_at = serializers.DateTimeField(required=False, allow_null=True)
    updated_at = serializers.DateTimeField(required=False, allow_null=True)

    def to_internal_value(self, data):
        if isinstance(data, dict) and "restaurantId" not in data and isinstance(data.get("restaurant"), dict):
            data = {**data, "restaurantId": data["restaurant"].get("id")}
            data.pop("restaurant")
        return super().to_internal_value(data)

    def to_snapshot(self) -> OrderSnapshot:
        return build_snapshot(self.validated_data)


class OrderEventSerializer(CamelCaseInputMixin, serializers.Serializer):
    """``{order, updatedBy}`` as carried by new_order / order_updated / order_status_update."""

    order = OrderSnapshotSerializer()
    # Unknown values are kept and treated as a non-customer update
    updated_by = serializers.CharField(required=False, allow_null=True, allow_blank=True)

    def to_snapshot(self) -> OrderSnapshot:
        return build_snapshot(self.validated_data["order"])


class CreateOrderSerializer(serializers.Serializer):
    """
    Validates an order about to be placed from a draft.

    Dine-in orders need a table. A table number equal to the delivery sentinel
    places a DELIVERY order, which needs a customer name, a valid phone and an
    address.
    """

    restaurant_id = serializers.CharField()
    table_number = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    items = serializers.ListField(child=serializers.DictField(), allow_empty=False)
    customer_name = serializers.CharField(required=False, allow_blank=True, default="", trim_whitespace=True)
    customer_phone = serializers.CharField(required=False, allow_blank=True, default="", trim_whitespace=True)
    customer_address = serializers.CharField(required=False, allow_blank=True, default="", trim_whitespace=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        table_number = attrs.get("table_number")
        if not table_number:
            raise serializers.ValidationError({"table_number": "A table number is required to place an order."})

        if table_number == app_settings.DELIVERY_TABLE_NUMBER:
            attrs["order_type"] = OrderType.DELIVERY
            self._validate_delivery(attrs)
        else:
            attrs["order_type"] = OrderType.DINE_IN
        return attrs

    def _validate_delivery(self, attrs):
        errors = {}
        name = attrs.get("customer_name", "")
        phone = attrs.get("customer_phone", "")

        if not name:
            errors["customer_name"] = "Customer name is required for delivery."
        elif len(name) < app_settings.CUSTOMER_NAME_MIN_LENGTH:
            errors["customer_name"] = (
                f"Customer name must be at least {app_settings.CUSTOMER_NAME_MIN_LENGTH} characters."
            )

        if not phone:
            errors["customer_phone"] = "Customer phone is required for delivery."
        elif not re.match(app_settings.CUSTOMER_PHONE_PATTERN, phone):
            errors["customer_phone"] = "Customer phone is not a valid number."

        if not attrs.get("customer_address"):
            errors["customer_address"] = "Customer address is required for delivery."

        if errors:
            raise serializers.ValidationError(errors)

    def to_payload(self) -> dict:
        """The ``create_order`` emission, camelCase, with empty optionals omitted."""
        data = self.validated_data
        payload = {
            "restaurantId": data["restaurant_id"],
            "orderType": str(data["order_type"]),
            "items": list(data["items"]),
        }
        if data["order_type"] != OrderType.DELIVERY:
            payload["tableNumber"] = data["table_number"]
        for field in ("customer_name", "customer_phone", "customer_address", "notes"):
            if data.get(field):
                payload[to_camel(field)] = data[field]
        return payload


def item_to_payload(item: OrderItemSnapshot) -> dict:
    return {
        "id": item.id,
        "menuItemId": item.menu_item_id,
        "name": item.name,
        "nameAr": item.name_ar,
        "quantity": item.quantity,
        "price": str(item.price),
        "discount": str(item.discount) if item.discount is not None else None,
        "notes": item.notes,
        "extras": item.extras,
        "isCustomItem": item.is_custom_item,
        "isNew": item.is_new,
        "isModified": item.is_modified,
    }


def snapshot_to_payload(order: OrderSnapshot) -> dict:
    return {
        "id": order.id,
        "status": str(order.status),
        "orderType": str(order.order_type),
        "tableNumber": order.table_number,
        "restaurantId": order.restaurant_id,
        "items": [item_to_payload(item) for item in order.items],
        "totalPrice": str(order.total_price),
        "currency": order.currency,
        "customerName": order.customer_name,
        "customerPhone": order.customer_phone,
        "customerAddress": order.customer_address,
        "notes": order.notes,
        "createdAt": order.created_at.isoformat() if order.created_at else None,
        "updatedAt": order.updated_at.isoformat() if order.updated_at else None,
    }
