#!/usr/bin/env python3
"""
Gateway Validation Script

Smoke-checks a running gateway over HTTP:
1. Health (liveness, readiness, root info)
2. Session (WAHA session status as seen by the gateway)
3. Integrations (Google Sheets, FAQ, prayer times)
4. Delivery (optional: queue a real test message)

Usage:
    python scripts/validate_gateway.py
    python scripts/validate_gateway.py --base-url http://localhost:3001 --city bandung
    python scripts/validate_gateway.py --send-to 6281234567890
"""

import sys
from datetime import datetime
from enum import Enum
from typing import List, Optional

import requests


class ValidationPhase(Enum):
    """Validation phases."""
    HEALTH = "health"
    SESSION = "session"
    INTEGRATIONS = "integrations"
    DELIVERY = "delivery"


class ValidationResult:
    """Single validation result."""

    def __init__(self, phase: ValidationPhase, name: str, passed: bool, details: str = ""):
        self.phase = phase
        self.name = name
        self.passed = passed
        self.details = details

    def __str__(self) -> str:
        status = "✓ PASS" if self.passed else "✗ FAIL"
        result = f"{status}: {self.phase.value.upper()} - {self.name}"
        if self.details:
            result += f"\n  {self.details}"
        return result


class Validator:
    """Masjid WhatsApp gateway validator."""

    def __init__(
        self,
        base_url: str,
        city: str = "jakarta",
        send_to: Optional[str] = None,
        timeout: float = 15.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.city = city
        self.send_to = send_to
        self.timeout = timeout
        self.results: List[ValidationResult] = []

    def run(self) -> bool:
        """Run all validations. Returns True if all passed."""
        print(f"\n{'='*70}")
        print(f"Masjid WhatsApp Gateway Validation - {self.base_url}")
        print(f"{'='*70}\n")

        self._validate_health()
        self._validate_session()
        self._validate_integrations()
        if self.send_to:
            self._validate_delivery()

        self._print_summary()
        return all(r.passed for r in self.results)

    def _get(self, path: str) -> requests.Response:
        return requests.get(f"{self.base_url}{path}", timeout=self.timeout)

    def _post(self, path: str, body: dict) -> requests.Response:
        return requests.post(f"{self.base_url}{path}", json=body, timeout=self.timeout)

    def _record(self, phase: ValidationPhase, name: str, passed: bool, details: str = "") -> None:
        self.results.append(ValidationResult(phase, name, passed, details))

    def _validate_health(self) -> None:
        """Liveness, readiness and the root endpoint."""
        for path in ("/health", "/health/live", "/health/ready", "/"):
            try:
                response = self._get(path)
                self._record(
                    ValidationPhase.HEALTH, f"GET {path}",
                    response.status_code == 200,
                    "" if response.status_code == 200 else f"HTTP {response.status_code}: {response.text[:200]}",
                )
            except requests.RequestException as e:
                self._record(ValidationPhase.HEALTH, f"GET {path}", False, str(e))

    def _validate_session(self) -> None:
        """Gateway status and session state."""
        try:
            response = self._get("/api/status")
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            self._record(ValidationPhase.SESSION, "GET /api/status", False, str(e))
            return

        self._record(ValidationPhase.SESSION, "GET /api/status", response.status_code == 200)

        bot = data.get("bot", {})
        session_state = bot.get("status", "UNKNOWN")
        self._record(
            ValidationPhase.SESSION, f"Session '{bot.get('sessionName')}' is WORKING",
            bool(bot.get("connected")),
            f"status={session_state}",
        )

        queue = bot.get("queue", {})
        self._record(
            ValidationPhase.SESSION, "Queue reachable",
            "size" in queue,
            f"size={queue.get('size')} stats={queue.get('stats')}",
        )

    def _validate_integrations(self) -> None:
        """Google Sheets, FAQ and prayer times."""
        checks = [
            ("Google Sheets connection", "/api/sheets/test"),
            ("FAQ readable", "/api/faq"),
            (f"Prayer times for {self.city}", f"/api/prayer/{self.city}"),
        ]
        for name, path in checks:
            try:
                response = self._get(path)
                body = response.json()
            except (requests.RequestException, ValueError) as e:
                self._record(ValidationPhase.INTEGRATIONS, name, False, str(e))
                continue

            passed = response.status_code == 200 and body.get("success") is True
            details = body.get("error", "") if not passed else ""
            if passed and path.startswith("/api/prayer/"):
                details = f"source={body['data'].get('source')}"
            elif passed and path == "/api/faq":
                details = f"{body.get('count', 0)} entries"
            self._record(ValidationPhase.INTEGRATIONS, name, passed, details)

    def _validate_delivery(self) -> None:
        """Queue one real message to --send-to."""
        body = {
            "chatId": self.send_to,
            "text": f"🧪 Test message from gateway validation at {datetime.now().isoformat()}",
            "priority": "high",
        }
        try:
            response = self._post("/webhook/send-message", body)
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            self._record(ValidationPhase.DELIVERY, "Send message queued", False, str(e))
            return

        passed = response.status_code == 200 and data.get("success") is True
        self._record(
            ValidationPhase.DELIVERY, "Send message queued", passed,
            f"messageId={data.get('messageId')}" if passed else data.get("error", ""),
        )

    def _print_summary(self) -> None:
        """Print validation summary."""
        print(f"\n{'='*70}")
        print("VALIDATION RESULTS")
        print(f"{'='*70}\n")

        for phase in ValidationPhase:
            phase_results = [r for r in self.results if r.phase == phase]
            if not phase_results:
                continue

            print(f"\n{phase.value.upper()}")
            print("-" * 70)

            for result in phase_results:
                print(result)

            passed = sum(1 for r in phase_results if r.passed)
            print(f"\n  Phase Summary: {passed}/{len(phase_results)} passed\n")

        total_passed = sum(1 for r in self.results if r.passed)
        total = len(self.results)

        print(f"{'='*70}")
        if total_passed == total:
            print(f"✓ ALL VALIDATIONS PASSED ({total_passed}/{total})")
        else:
            print(f"✗ SOME VALIDATIONS FAILED ({total_passed}/{total})")
        print(f"{'='*70}\n")


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Validate a running Masjid WhatsApp gateway"
    )
    parser.add_argument(
        "--base-url",
        default="http://localhost:3001",
        help="Gateway base URL"
    )
    parser.add_argument(
        "--city",
        default="jakarta",
        help="City used for the prayer-times check"
    )
    parser.add_argument(
        "--send-to",
        default=None,
        help="Phone number or chat id to queue a real test message to"
    )

    args = parser.parse_args()

    validator = Validator(base_url=args.base_url, city=args.city, send_to=args.send_to)
    success = validator.run()

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
