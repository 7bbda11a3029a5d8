DEMO_OWNER_EMAIL = "demo@demo.com"
DEMO_OWNER_PASSWORD = "Demo12345!"
DEMO_STAFF_EMAIL = "staff@demo.com"
DEMO_STAFF_PASSWORD = "Staff12345!"
APP_HOST = "app.saasresto.test"
BASE_DOMAIN = "saasresto.test"


def tenant_host(slug: str) -> str:
    return f"{slug}.{BASE_DOMAIN}"


async def login_token(client, email: str, password: str, tenant_slug: str = "demo") -> str:
    response = await client.post(
        "/api/auth/login",
        json={"email": email, "password": password},
        headers={"host": tenant_host(tenant_slug)},
    )
    assert response.status_code == 200, response.text
    token = response.cookies.get("session_token")
    assert token
    client.cookies.clear()
    return token


def session_cookie(token: str) -> dict[str, str]:
    return {"cookie": f"session_token={token}"}
