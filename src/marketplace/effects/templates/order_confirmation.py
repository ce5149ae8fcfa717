"""Order confirmation template: sent to the buyer when an order is created."""


class OrderConfirmationTemplate:
    name = "order-confirmation"

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        buyer_name = context.get("buyer_name") or "there"
        lines = "\n".join(f"  {item['quantity']} x {item['name']}  {item['amount']}" for item in context.get("items", []))

        payment = ""
        if context.get("card_last4"):
            payment = f"Paid with {context.get('card_brand') or 'card'} ending in {context['card_last4']}\n"
        if context.get("statement_descriptor"):
            payment += f"This charge appears on your statement as {context['statement_descriptor']}\n"

        return {
            "subject": f"Your order {order_number} is confirmed",
            "body": (
                f"Hi {buyer_name},\n\n"
                f"Thanks for your purchase from {context.get('seller_name', 'the shop')}.\n\n"
                f"Order {order_number}\n"
                f"{lines}\n\n"
                f"Total: {context.get('total', '$0.00')}\n"
                f"{payment}\n"
                f"Questions about your order? Visit {context.get('support_url', '')}"
            ),
        }
