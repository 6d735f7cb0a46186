# cli.py
import os
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from sdk.estore import StoreAPIError, StoreClient

console = Console()
c = StoreClient(base_url=os.getenv("ESTORE_API_URL", "http://127.0.0.1:8085"))

ORDER_STATUSES = ["Pending", "Shipped", "Delivered"]

# Global state for status messages and caching
status_message = "Ready"
product_cache: List[Dict[str, Any]] = []

# Custom prompt style for prompt_toolkit
custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


def format_money(value: Any) -> str:
    try:
        return f"₹{float(value):,.2f}"
    except (TypeError, ValueError):
        return "-"


# ---------------------------
# Display helpers
# ---------------------------
def show_products(products: List[Dict[str, Any]]):
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    table = Table(
        title="📦 Products Catalog",
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", justify="right", width=6)
    table.add_column("Name", style="bold", width=24)
    table.add_column("Description", width=32)
    table.add_column("Price", justify="right", width=12)
    table.add_column("Stock", justify="right", width=8)
    table.add_column("Category", width=14)

    for p in products:
        stock = p.get("stock", 0)
        stock_style = "red" if stock == 0 else "green"
        table.add_row(
            str(p.get("id", "N/A")),
            p.get("name", "N/A"),
            p.get("description", ""),
            format_money(p.get("price")),
            f"[{stock_style}]{stock}[/{stock_style}]",
            p.get("category", "")
        )
    console.print(table)


def show_orders(orders: List[Dict[str, Any]], title: str):
    if not orders:
        console.print("[italic yellow]No orders yet[/italic yellow]")
        return

    is_admin_view = any("customer" in o for o in orders)
    table = Table(
        title=f"📋 {title}",
        box=box.ROUNDED,
        header_style="bold yellow",
        title_style="bold yellow",
        show_lines=True
    )
    table.add_column("Order", style="dim", justify="right", width=7)
    if is_admin_view:
        table.add_column("Customer", width=18)
    table.add_column("Product", width=24)
    table.add_column("Qty", justify="right", width=5)
    table.add_column("Total", justify="right", width=12)
    table.add_column("Status", width=10)
    table.add_column("Date", width=19)

    status_styles = {"Pending": "yellow", "Shipped": "cyan", "Delivered": "green"}
    for o in orders:
        style = status_styles.get(o.get("status"), "white")
        row = [str(o.get("order_id", "N/A"))]
        if is_admin_view:
            row.append(o.get("customer", ""))
        created = str(o.get("created_at", ""))[:19].replace("T", " ")
        row += [
            o.get("product", ""),
            str(o.get("quantity", 0)),
            format_money(o.get("total_price")),
            f"[{style}]{o.get('status', 'N/A')}[/{style}]",
            created,
        ]
        table.add_row(*row)

    console.print(table)


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


# ---------------------------
# API wrapper
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner and reports the outcome.
    Returns the decoded body, or None when the call failed.
    """
    global status_message
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)
    except StoreAPIError as e:
        status_message = f"Error: {e.detail}"
        console.print(show_status(status_message, False))
        return None
    except Exception as e:
        status_message = f"Error: {e}"
        console.print(show_status(status_message, False))
        return None

    if success_msg:
        status_message = success_msg
        console.print(show_status(success_msg, True))
    return result


# ---------------------------
# Autocompletion helpers
# ---------------------------
def get_product_completer():
    global product_cache
    if not product_cache:
        product_cache = try_api(c.list_products) or []
    return WordCompleter([str(p.get("id")) for p in product_cache], ignore_case=True)


def get_category_completer():
    categories = sorted({p.get("category", "") for p in product_cache if p.get("category")})
    return WordCompleter(categories, ignore_case=True)


def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    who = "not logged in"
    if c.user:
        who = f"{c.user['name']} ({c.user['role']})"
    header.add_row(
        "🛍️ estore",
        "[bold blue]E-Commerce Terminal[/bold blue]",
        f"[dim]{who} · {now}[/dim]"
    )
    return Panel(header, style="bold blue")


def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def ask_float(message: str, default: float = 10.0) -> float:
    while True:
        raw = Prompt.ask(message, default=str(default))
        try:
            return float(raw)
        except ValueError:
            console.print("[red]Please enter a valid number.[/red]")


def ask_optional_float(message: str) -> Optional[float]:
    while True:
        raw = Prompt.ask(message, default="").strip()
        if not raw:
            return None
        try:
            return float(raw)
        except ValueError:
            console.print("[red]Please enter a valid number or leave blank.[/red]")


def is_admin() -> bool:
    return bool(c.user and c.user.get("role") == "admin")


# ---------------------------
# Actions
# ---------------------------
def do_login():
    email = prompt_with_autocomplete("Email")
    password = Prompt.ask("Password", password=True)
    resp = try_api(c.login, email, password, success_msg="Login successful")
    if resp:
        console.print(create_header())


def do_signup():
    name = prompt_with_autocomplete("Name")
    email = prompt_with_autocomplete("Email")
    password = Prompt.ask("Password", password=True)
    try_api(c.signup, name, email, password, success_msg="User registered, you can log in now")


def do_browse(search: bool = False):
    global product_cache
    if search:
        term = prompt_with_autocomplete("Search term (blank for all)")
        min_price = ask_optional_float("Min price (blank for none)")
        max_price = ask_optional_float("Max price (blank for none)")
        category = prompt_with_autocomplete("Category (blank for any)", completer=get_category_completer())
        products = try_api(c.list_products, term or None, min_price, max_price, category or None)
    else:
        products = try_api(c.list_products)
    if products is not None:
        if not search:
            product_cache = products
        show_products(products)


def do_buy():
    pid = prompt_with_autocomplete("Product ID", completer=get_product_completer())
    qty = IntPrompt.ask("Quantity", default=1)
    address = prompt_with_autocomplete("Delivery address")
    resp = try_api(c.place_order, int(pid), qty, address)
    if resp:
        console.print(Panel.fit(
            f"[green]{resp.get('message', 'Order placed')}[/green]\n"
            f"Order ID: [bold]{resp['order_id']}[/bold]\n"
            f"Product: {resp['product']} x{resp['quantity']}\n"
            f"Total: [bold]{format_money(resp['total_price'])}[/bold]",
            title="✅ Order Confirmation"
        ))


def do_orders():
    orders = try_api(c.list_orders, success_msg="Orders loaded")
    if orders is not None:
        show_orders(orders, "All orders" if is_admin() else "My orders")


def do_cancel():
    order_id = IntPrompt.ask("Order ID to cancel")
    if Confirm.ask(f"Cancel order {order_id}?"):
        try_api(c.cancel_order, order_id, success_msg=f"Order {order_id} cancelled")


def do_add_product():
    name = prompt_with_autocomplete("Product name")
    description = prompt_with_autocomplete("Description")
    price = ask_float("💰 Price", default=10.0)
    stock = IntPrompt.ask("📦 Stock", default=1)
    category = prompt_with_autocomplete("🏷️ Category", completer=get_category_completer())
    resp = try_api(c.create_product, name, price, stock, description, category,
                   success_msg=f"Product '{name}' created")
    if resp:
        show_products([resp])


def do_update_product():
    pid = int(prompt_with_autocomplete("Product ID", completer=get_product_completer()))
    current = try_api(c.get_product, pid)
    if not current:
        return
    changes = {
        "name": prompt_with_autocomplete("Name", default=current["name"]),
        "description": prompt_with_autocomplete("Description", default=current.get("description", "")),
        "price": ask_float("Price", default=float(current["price"])),
        "stock": IntPrompt.ask("Stock", default=current["stock"]),
        "category": prompt_with_autocomplete("Category", default=current.get("category", "")),
    }
    resp = try_api(c.update_product, pid, success_msg=f"Product {pid} updated", **changes)
    if resp:
        show_products([resp["product"]])


def do_delete_product():
    pid = int(prompt_with_autocomplete("Product ID", completer=get_product_completer()))
    if Confirm.ask(f"[red]Delete product {pid}?[/red]"):
        try_api(c.delete_product, pid, success_msg=f"Product {pid} deleted")


def do_set_status():
    order_id = IntPrompt.ask("Order ID")
    status = prompt_with_autocomplete("New status", completer=WordCompleter(ORDER_STATUSES))
    try_api(c.update_order_status, order_id, status, success_msg=f"Order {order_id} is now {status}")


USER_ACTIONS = {
    "1": ("📦 List products", do_browse),
    "2": ("🔍 Search products", lambda: do_browse(search=True)),
    "3": ("🛒 Buy a product", do_buy),
    "4": ("📋 Orders", do_orders),
    "5": ("❌ Cancel order", do_cancel),
}

ADMIN_ACTIONS = {
    "6": ("➕ Add product", do_add_product),
    "7": ("✏️ Update product", do_update_product),
    "8": ("🗑️ Delete product", do_delete_product),
    "9": ("🚚 Set order status", do_set_status),
}


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global status_message, product_cache

    console.clear()
    console.print(create_header())

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        actions: Dict[str, Any] = {}
        if c.user:
            actions.update(USER_ACTIONS)
            if is_admin():
                actions.update(ADMIN_ACTIONS)
            actions["l"] = ("👋 Log out", c.logout)
        else:
            actions["1"] = USER_ACTIONS["1"]
            actions["2"] = USER_ACTIONS["2"]
            actions["i"] = ("🔑 Log in", do_login)
            actions["s"] = ("📝 Sign up", do_signup)

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        for key, (label, _) in actions.items():
            menu_table.add_row(key, label)
        menu_table.add_row("q", "🚪 Quit")
        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter(list(actions) + ["q", "quit", "exit"])
        ).strip()

        if choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Thank you for shopping! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)
        elif choice in actions:
            try:
                actions[choice][1]()
            except ValueError:
                status_message = "Error: invalid number"
                console.print(show_status(status_message, False))
        else:
            status_message = f"Error: unknown option '{choice}'"

        console.print()
        console.rule(style="dim")


def main():
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
