#!/usr/bin/env python3
"""
Smoke-test a running admin API server end to end.
Run `zook-admin-api` first, then this script.
"""

import getpass
import json
import os

import requests

BASE_URL = os.getenv("ZOOK_API_URL", "http://localhost:8000")


def show(response):
    print(f"Status Code: {response.status_code}")
    print(f"Response: {json.dumps(response.json(), indent=2)[:1500]}")


def banner(title):
    print("\n" + "=" * 50)
    print(f"TEST: {title}")
    print("=" * 50)


def test_health():
    banner("Health Check")
    response = requests.get(f"{BASE_URL}/health")
    show(response)
    return response.status_code == 200


def test_index():
    banner("API Info")
    response = requests.get(f"{BASE_URL}/")
    show(response)
    return response.json().get("status") == "success"


def test_login_invalid():
    banner("Login with Invalid Credentials")
    response = requests.post(
        f"{BASE_URL}/api/auth/login",
        json={"username": "nobody", "password": "wrong-password"},
    )
    show(response)
    return response.status_code == 401


def test_login(username, password):
    banner("Login with Valid Credentials")
    response = requests.post(
        f"{BASE_URL}/api/auth/login",
        json={"username": username, "password": password},
    )
    show(response)
    if response.status_code == 200:
        return response.json()["data"]["token"]
    return None


def test_without_token():
    banner("List Countries Without Token")
    response = requests.get(f"{BASE_URL}/api/countries")
    show(response)
    return response.status_code == 401


def test_profile(token):
    banner("Get Admin Profile")
    response = requests.get(
        f"{BASE_URL}/api/auth/profile",
        headers={"Authorization": f"Bearer {token}"},
    )
    show(response)
    return response.status_code == 200


def test_list(token, path, **params):
    banner(f"List {path}")
    response = requests.get(
        f"{BASE_URL}{path}",
        headers={"Authorization": f"Bearer {token}"},
        params=params,
    )
    show(response)
    if response.status_code != 200:
        return False
    data = response.json()["data"]
    print(f"Total: {data.get('total')}  Pages: {data.get('totalPages')}")
    return True


def test_bad_sort(token):
    banner("Unknown sort_by is rejected")
    response = requests.get(
        f"{BASE_URL}/api/stores",
        headers={"Authorization": f"Bearer {token}"},
        params={"sort_by": "password"},
    )
    show(response)
    return response.status_code == 400


def main():
    print("=" * 50)
    print("Zook Admin API Smoke Test")
    print("=" * 50)
    print(f"Base URL: {BASE_URL}")
    print("Make sure the API server is running!")
    print()

    username = input("Admin username: ").strip()
    password = getpass.getpass("Admin password: ")
    if not username or not password:
        print("ERROR: username and password are required")
        return

    results = {}

    try:
        results["Health Check"] = test_health()
        results["API Info"] = test_index()
        results["Login Invalid"] = test_login_invalid()
        results["Without Token"] = test_without_token()

        token = test_login(username, password)
        if token:
            results["Login Valid"] = True
            results["Get Profile"] = test_profile(token)
            results["List Countries"] = test_list(token, "/api/countries", limit=5)
            results["List Stores"] = test_list(token, "/api/stores", sort_by="name",
                                               sort_order="asc")
            results["List Orders"] = test_list(token, "/api/orders", page=1, limit=10)
            results["Bad Sort"] = test_bad_sort(token)
        else:
            results["Login Valid"] = False
            print("\nERROR: Could not login. Remaining tests skipped.")

    except Exception as e:
        print(f"\n\nERROR: {e}")
        import traceback
        traceback.print_exc()

    print("\n" + "=" * 50)
    print("TEST SUMMARY")
    print("=" * 50)
    passed = sum(1 for v in results.values() if v)
    total = len(results)

    for test, result in results.items():
        status = "✓ PASS" if result else "✗ FAIL"
        print(f"{status}: {test}")

    print(f"\nTotal: {passed}/{total} tests passed")
    print("=" * 50)


if __name__ == "__main__":
    main()
