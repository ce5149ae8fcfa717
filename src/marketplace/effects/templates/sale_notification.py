"""Sale notification template: sent to the seller when an order is created."""


class SaleNotificationTemplate:
    name = "sale-notification"

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        lines = "\n".join(f"  {item['quantity']} x {item['name']}  {item['amount']}" for item in context.get("items", []))

        shipping = context.get("shipping")
        if shipping:
            address = ", ".join(
                part
                for part in (
                    shipping.get("line1"),
                    shipping.get("line2"),
                    shipping.get("city"),
                    shipping.get("state"),
                    shipping.get("postal_code"),
                    shipping.get("country"),
                )
                if part
            )
            ship_to = f"Ship to: {shipping.get('name') or 'Customer'}, {address}\n"
        else:
            ship_to = "No shipping address was collected.\n"

        return {
            "subject": f"New sale: {context.get('order_name', order_number)}",
            "body": (
                f"Hi {context.get('seller_name', 'Seller')},\n\n"
                f"You made a sale! Order {order_number}\n"
                f"{lines}\n\n"
                f"Total: {context.get('total', '$0.00')}\n"
                f"Buyer: {context.get('buyer_email') or 'unknown'}\n"
                f"{ship_to}"
            ),
        }
