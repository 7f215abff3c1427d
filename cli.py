# cli.py - interactive admin shell for the product catalog
import os
import sys
from datetime import datetime
from typing import List, Dict, Any, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import IntPrompt, Confirm, Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich import box

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter, PathCompleter
from prompt_toolkit.styles import Style as PromptStyle

from sdk.fabian_client import AdminClient, AdminClientError, ConflictError, UnauthorizedError

console = Console()
c = AdminClient(
    base_url=os.getenv("ADMIN_API_URL", "http://127.0.0.1:8085"),
    api_key=os.getenv("ADMIN_API_KEY"),
)

status_message = "Ready"
product_cache: List[Dict[str, Any]] = []
category_cache: List[str] = []

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


# ---------------------------
# Display helpers
# ---------------------------
def show_products(products: List[Dict[str, Any]], title: str = "📦 Catalogo Prodotti"):
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    table = Table(
        title=title,
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=6)
    table.add_column("Name", style="bold", width=24)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Categories", width=22)
    table.add_column("★", justify="center", width=3)
    table.add_column("Images", justify="right", width=7)

    for p in products:
        table.add_row(
            str(p.get("id", "N/A")),
            p.get("name", "N/A"),
            f"€{p.get('price', '-')}",
            ", ".join(p.get("categories") or []),
            "★" if p.get("featured") else "",
            str(len(p.get("images") or [])),
        )
    console.print(table)


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


# ---------------------------
# API wrapper: the three failure classes get different advice
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    global status_message
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)

        if success_msg:
            status_message = success_msg
            console.print(show_status(success_msg, True))
        return result
    except ConflictError as e:
        status_message = f"Error: {e.message}"
        console.print(show_status(f"{e.message}\nReload the catalog (option 1) and redo the change.", False))
    except UnauthorizedError as e:
        status_message = f"Error: {e.message}"
        console.print(show_status(f"{e.message}\nSet a valid ADMIN_API_KEY and restart.", False))
    except AdminClientError as e:
        status_message = f"Error: {e.message}"
        console.print(show_status(f"Error: {e.message}", False))
    except Exception as e:
        status_message = f"Error: {e}"
        console.print(show_status(f"Error: {e}", False))
    return None


# ---------------------------
# Autocompletion helpers
# ---------------------------
def get_product_completer():
    global product_cache
    if not product_cache:
        product_cache = try_api(c.list_products) or []
    ids = [str(p.get("id", "")) for p in product_cache]
    return WordCompleter([i for i in ids if i], ignore_case=True)


def get_category_completer():
    global category_cache
    if not category_cache:
        category_cache = try_api(c.categories) or []
    return WordCompleter(category_cache, ignore_case=True)


def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "🧵 Fabian Admin",
        "[bold blue]Catalog management CLI[/bold blue]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold blue")


# ---------------------------
# Input helpers
# ---------------------------
def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def ask_price(message: str, default: str = "") -> str:
    while True:
        raw = Prompt.ask(message, default=default or None)
        if raw and "." in raw and len(raw.split(".")[1]) == 2 and raw.replace(".", "", 1).isdigit():
            return raw
        console.print("[red]Price must look like 18.00[/red]")


def ask_categories(default: Optional[List[str]] = None) -> List[str]:
    raw = prompt_with_autocomplete(
        "🏷️ Categories (space separated)",
        completer=get_category_completer(),
        default=" ".join(default or []),
    )
    return [cat for cat in raw.split() if cat]


def ask_image_paths(required: bool = True) -> List[str]:
    paths: List[str] = []
    hint = "" if required else " (empty keeps current images)"
    while True:
        path = prompt_with_autocomplete(f"🖼️ Image file{hint}, empty to finish", completer=PathCompleter()).strip()
        if not path:
            return paths
        if not os.path.isfile(path):
            console.print(f"[red]No such file: {path}[/red]")
            continue
        paths.append(path)


def print_progress(index: int, total: int, path: str):
    console.print(f"[cyan]Uploading image {index} of {total}: {os.path.basename(path)}[/cyan]")


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global status_message, product_cache

    console.clear()
    console.print(create_header())
    product_cache = try_api(c.list_products) or []

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "📦 List products", "5", "🗑️ Delete product"),
            ("2", "🏷️ Products by category", "6", "🔗 Related products"),
            ("3", "➕ Add product", "7", "📚 Categories"),
            ("4", "✏️ Edit product", "q", "👋 Quit"),
        ]
        for row in options:
            menu_table.add_row(*row)

        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 8)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            products = try_api(c.list_products, success_msg="Products loaded successfully")
            if products is not None:
                product_cache = products
                show_products(products)

        elif choice == "2":
            category = prompt_with_autocomplete("Category", completer=get_category_completer()).strip()
            products = try_api(c.list_products, category, success_msg=f"Products in '{category}' loaded")
            if products is not None:
                show_products(products, title=f"🏷️ {category}")

        elif choice == "3":
            name = prompt_with_autocomplete("Product name")
            price = ask_price("💰 Price (e.g. 18.00)")
            description = prompt_with_autocomplete("Description")
            categories = ask_categories()
            featured = Confirm.ask("Featured?", default=False)
            height = Prompt.ask("Height (optional)", default="") or None
            width = Prompt.ask("Width (optional)", default="") or None
            paths = ask_image_paths()
            resp = try_api(
                c.add_product, name, price, description, categories, paths,
                featured=featured, height=height, width=width, on_progress=print_progress,
                success_msg=f"Product '{name}' added. The site updates in 30-60 seconds."
            )
            if resp:
                console.print(Panel(f"Added product: [green]{resp['productId']}[/green]"))
                product_cache = try_api(c.list_products) or []

        elif choice == "4":
            pid = prompt_with_autocomplete("Product ID", completer=get_product_completer()).strip()
            current = try_api(c.get_product, pid)
            if not current:
                continue
            show_products([current])
            specs = current.get("specs") or {}
            name = prompt_with_autocomplete("Product name", default=current.get("name", ""))
            price = ask_price("💰 Price", default=current.get("price", ""))
            description = prompt_with_autocomplete("Description", default=current.get("description", ""))
            categories = ask_categories(current.get("categories"))
            featured = Confirm.ask("Featured?", default=bool(current.get("featured")))
            height = Prompt.ask("Height", default=specs.get("altezza", "")) or None
            width = Prompt.ask("Width", default=specs.get("larghezza", "")) or None
            paths = ask_image_paths(required=False)
            resp = try_api(
                c.edit_product, pid, name, price, description, categories,
                featured=featured, image_paths=paths, height=height, width=width, on_progress=print_progress,
                success_msg=f"Product {pid} updated"
            )
            if resp:
                product_cache = try_api(c.list_products) or []

        elif choice == "5":
            pid = prompt_with_autocomplete("Product ID", completer=get_product_completer()).strip()
            if Confirm.ask(f"[red]Delete product {pid} permanently?[/red]"):
                resp = try_api(c.delete_product, pid)
                if resp:
                    console.print(show_status(f"Deleted '{resp['productName']}' ({resp['productId']})", True))
                    product_cache = try_api(c.list_products) or []

        elif choice == "6":
            pid = prompt_with_autocomplete("Product ID", completer=get_product_completer()).strip()
            count = IntPrompt.ask("How many", default=6)
            related = try_api(c.related_products, pid, count)
            if related is not None:
                show_products(related, title=f"🔗 Related to {pid}")

        elif choice == "7":
            cats = try_api(c.categories)
            if cats:
                console.print(Panel(", ".join(cats), title="📚 Categories", border_style="green"))

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Arrivederci! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n\n[bold red]Unexpected error: {e}[/bold red]")
        sys.exit(1)
