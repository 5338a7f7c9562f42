"""Interactive Telegram login.

Authorizes the account once (QR code or phone code) and prints a string
session to paste into .env as TELEGRAM_STRING_SESSION.
"""

import asyncio
import logging
import os
from getpass import getpass

import qrcode
from dotenv import load_dotenv
from telethon import TelegramClient, errors
from telethon.sessions import StringSession


def create_client() -> TelegramClient:
    load_dotenv()
    api_id = os.getenv("API_ID") or os.getenv("TELEGRAM_API_ID")
    api_hash = os.getenv("API_HASH") or os.getenv("TELEGRAM_API_HASH")
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")
    return TelegramClient(StringSession(), int(api_id), api_hash, connection_retries=5)


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _resolve_2fa_password() -> str:
    password = os.getenv("2FA")
    if password:
        return password
    return getpass("2FA password: ")


async def _authorize_with_qr(client: TelegramClient) -> None:
    qr = await client.qr_login()
    _print_qr(qr.url)
    await qr.wait(timeout=120)


async def _authorize_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    code = input("Login code: ").strip()
    try:
        await client.sign_in(phone=phone, code=code)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())


def _pick_login_method() -> str:
    method = (os.getenv("LOGIN_METHOD") or "").strip().lower()
    if method in {"qr", "phone"}:
        return method
    while True:
        print("")
        print("Login methods:")
        print("[1] QR code")
        print("[2] Phone code")
        print("[3] Exit")
        print("Select a login method: \n")
        choice = input("tokenscope > ").strip()
        if choice == "1":
            return "qr"
        elif choice == "2":
            return "phone"
        elif choice == "3":
            raise SystemExit(0)
        else:
            print("Invalid option. Please choose 1, 2, or 3.")


async def authorize(client: TelegramClient) -> None:
    if await client.is_user_authorized():
        return

    try:
        method = _pick_login_method()
        if method == "phone":
            await _authorize_with_phone(client)
        else:
            await _authorize_with_qr(client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())


async def login() -> str:
    """Log in interactively and return the string session."""

    client = create_client()
    await client.connect()
    try:
        await authorize(client)
        me = await client.get_me()
        logging.getLogger(__name__).info("Logged in as: %s", me.first_name)
        return client.session.save()
    finally:
        await client.disconnect()


def main() -> None:
    session_string = asyncio.run(login())
    print("\nHere is your session string (copy this to your .env file as TELEGRAM_STRING_SESSION):\n")
    print(session_string)


if __name__ == "__main__":
    main()
