from fastapi import Depends, Request

from src.adapters.auth.crypto import Argon2PasswordHasher, HashingWorkerPool
from src.adapters.clock import SystemClock
from src.adapters.sqlite_db import SQLiteSubscriptionRepo, SQLiteUserRepo
from src.app_shell.context import AppContext
from src.components.newsletter import NewsletterConfig, UnitOfWorkFactory
from src.core.ports.email import EmailGatewayPort


# --- Context ---
def get_context(request: Request) -> AppContext:
    context: AppContext = request.app.state.context
    return context


# --- Storage ---
def get_uow_factory(ctx: AppContext = Depends(get_context)) -> UnitOfWorkFactory:
    return ctx.unit_of_work


def get_user_repo(ctx: AppContext = Depends(get_context)) -> SQLiteUserRepo:
    return ctx.user_repo


def get_confirmed_subscribers(ctx: AppContext = Depends(get_context)) -> SQLiteSubscriptionRepo:
    return ctx.subscriptions


# --- Hashing ---
def get_hasher(ctx: AppContext = Depends(get_context)) -> Argon2PasswordHasher:
    return ctx.hasher


def get_hashing_pool(ctx: AppContext = Depends(get_context)) -> HashingWorkerPool:
    return ctx.hashing_pool


# --- Email / Misc ---
def get_email_gateway(ctx: AppContext = Depends(get_context)) -> EmailGatewayPort:
    return ctx.email_gateway


def get_newsletter_config(ctx: AppContext = Depends(get_context)) -> NewsletterConfig:
    return ctx.newsletter_config


def get_clock(ctx: AppContext = Depends(get_context)) -> SystemClock:
    return ctx.clock
