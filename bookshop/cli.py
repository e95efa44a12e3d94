# bookshop/cli.py
import os
from decimal import Decimal, InvalidOperation

import click
from flask import Flask

from bookshop.extensions import db


def register_cli(app: Flask) -> None:
    @app.cli.command("create-admin")
    @click.option("--username", default=lambda: os.environ.get("ADMIN_USERNAME", "admin"),
                  show_default=True, help="Admin username")
    @click.option("--email", default=lambda: os.environ.get("ADMIN_EMAIL", "admin@example.com"),
                  show_default=True, help="Admin e-mail")
    @click.option("--name", default="Administrator", show_default=True, help="Display name")
    @click.option("--password", default=lambda: os.environ.get("ADMIN_PASSWORD"),
                  help="Password (prompted when omitted)")
    @click.option("--force", is_flag=True, default=False,
                  help="Reset password and admin flag of an existing account")
    def create_admin(username: str, email: str, name: str, password: str | None, force: bool):
        """Create or reset an admin account."""
        from bookshop.models.user import User

        if not password:
            password = click.prompt("Password", hide_input=True, confirmation_prompt=True)

        u = User.query.filter_by(username=username).first()
        if u and not force:
            click.echo(f"User '{username}' already exists. Use --force to reset the password.")
            return

        if not u:
            u = User(username=username, email=email.strip().lower(), name=name)
            db.session.add(u)

        u.is_admin = True
        u.set_password(password)
        db.session.commit()
        click.echo(f"Admin ready: {username}")

    @app.cli.command("add-book")
    @click.option("--title", required=True, help="English title")
    @click.option("--title-ta", default=None, help="Tamil title")
    @click.option("--author", default=None)
    @click.option("--price", required=True, help="List price")
    @click.option("--discounted-price", default=None, help="Sale price, if any")
    def add_book(title, title_ta, author, price, discounted_price):
        """Add an active book to the catalog."""
        from bookshop.models.book import Book

        try:
            price = Decimal(price)
            discounted = Decimal(discounted_price) if discounted_price else None
        except InvalidOperation:
            raise click.BadParameter("price must be a number")

        book = Book(title_en=title, title_ta=title_ta, author=author, price=price,
                    discounted_price=discounted, status="active")
        db.session.add(book)
        db.session.commit()
        click.echo(f"Book #{book.id} added: {book.title_en} ({book.selling_price})")
