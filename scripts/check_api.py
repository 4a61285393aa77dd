#!/usr/bin/env python3
"""
Check a running instance: self-test, status and input validation.

Usage: python scripts/check_api.py [base_url] [youtube_url]
Passing a YouTube URL also runs a real (billable) transcription.
"""

import sys

import requests


def check_self_test(base_url):
    print("🏥 Testing /api/test")
    try:
        response = requests.get(f"{base_url}/api/test", timeout=10)
        print(f"Status: {response.status_code}")
        print(f"Content: {response.text}")
        return response.status_code == 200 and response.json().get("success") is True
    except requests.RequestException as e:
        print(f"❌ Self test failed: {e}")
        return False


def check_status(base_url):
    print("\n📡 Testing /api/status")
    try:
        response = requests.get(f"{base_url}/api/status", timeout=10)
        data = response.json()
        print(f"Services: {data.get('services')}")
        print(f"Limits: {data.get('limits')}")
        if data.get("services", {}).get("assemblyai") != "configured":
            print("⚠️ AssemblyAI key not configured, /api/transcribe will answer 500")
        return response.status_code == 200
    except requests.RequestException as e:
        print(f"❌ Status check failed: {e}")
        return False


def check_rejects_bad_url(base_url):
    print("\n🔧 Testing input validation")
    try:
        response = requests.post(f"{base_url}/api/transcribe", json={"url": "https://example.com/watch?v=x"}, timeout=10)
        print(f"Status: {response.status_code}")
        print(f"Content: {response.text}")
        return response.status_code == 400
    except requests.RequestException as e:
        print(f"❌ Validation check failed: {e}")
        return False


def check_transcribe(base_url, video_url):
    print(f"\n🎙️ Transcribing {video_url}")
    try:
        response = requests.post(f"{base_url}/api/transcribe", json={"url": video_url}, timeout=1800)
    except requests.RequestException as e:
        print(f"❌ Transcription request failed: {e}")
        return False
    data = response.json()
    print(f"Status: {response.status_code}")
    print(f"Message: {data.get('message')}")
    if data.get("success"):
        print(f"Video: {data['videoInfo']['title']} ({data['videoInfo']['duration']})")
        print(f"Confidence: {data.get('confidence')}")
        print(data.get("transcription", "")[:500])
    return response.status_code == 200


def main():
    base_url = (sys.argv[1] if len(sys.argv) > 1 else "http://localhost:3000").rstrip("/")
    checks = [check_self_test, check_status, check_rejects_bad_url]

    passed = sum(1 for check in checks if check(base_url))
    total = len(checks)
    if len(sys.argv) > 2:
        total += 1
        passed += int(check_transcribe(base_url, sys.argv[2]))

    print(f"\n📊 Results: {passed}/{total} checks passed")
    return passed == total


if __name__ == "__main__":
    sys.exit(0 if main() else 1)
