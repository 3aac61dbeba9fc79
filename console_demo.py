"""
Offline console demo: a full chat intake and job lifecycle without API keys.

A scripted assistant asks for each booking detail in turn and a
rule-based extractor stands in for the extraction model. Everything
else is real: the confirmation gatekeeper, the ledger with
auto-assignment, the job lifecycle and the invoice arithmetic. No LLM,
no network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario booking
    python console_demo.py --scenario declined
"""

import argparse
import asyncio
from typing import Sequence

from dispatch.billing.calculator import derive
from dispatch.config import settings
from dispatch.conversation.session import ChatSession
from dispatch.errors import DispatchError
from dispatch.ledger.booking_ledger import BookingLedger
from dispatch.ledger.store import InMemoryStore
from dispatch.schemas.booking_schema import CompletionReport, SafetyChecks
from dispatch.schemas.conversation_schema import ExtractionResult, Speaker, TranscriptTurn
from dispatch.scheduling.slots import next_n_days

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

SUMMARY_QUESTION = "Is this information correct? Shall I proceed with the booking?"
AFFIRMATIVES = ("yes", "yep", "yeah", "confirm", "correct", "proceed", "go ahead")

QUESTIONS: list[tuple[str, str]] = [
    ("name", "May I have your full name?"),
    ("phone", "What's the best phone number to reach you on?"),
    ("service_type", "Is this for an Installation or a Repair / Maintenance?"),
    ("description", "Briefly, what's happening with the system?"),
    ("address", "What's the site address?"),
    ("preferred_date_time", "Which slot suits you? For example {slot}."),
]


def _user_answers(transcript: Sequence[TranscriptTurn]) -> list[str]:
    return [t.text for t in transcript if t.speaker == Speaker.USER]


def _summary_shown(transcript: Sequence[TranscriptTurn]) -> int:
    """Index of the last summary turn, or -1."""
    for i in range(len(transcript) - 1, -1, -1):
        turn = transcript[i]
        if turn.speaker == Speaker.AGENT and SUMMARY_QUESTION in turn.text:
            return i
    return -1


class ScriptedProvider:
    """Asks for one booking detail per turn, then reads back a summary."""

    def __init__(self, example_slot: str) -> None:
        self._example_slot = example_slot

    async def reply(self, directive: str, transcript: Sequence[TranscriptTurn]) -> str:
        answers = _user_answers(transcript)
        if not answers:
            return (
                f"G'day, you've reached {settings.business.name}. "
                f"I can book an HVAC service for you. {QUESTIONS[0][1]}"
            )
        if len(answers) < len(QUESTIONS):
            return QUESTIONS[len(answers)][1].format(slot=self._example_slot)
        if len(answers) == len(QUESTIONS):
            details = ", ".join(
                f"{field.replace('_', ' ')}: {value}"
                for (field, _), value in zip(QUESTIONS, answers)
            )
            return f"Here's what I have. {details}. {SUMMARY_QUESTION}"
        if answers[-1].lower().startswith(AFFIRMATIVES):
            return "Perfect, locking that in now."
        return "No problem. Tell me what to change and I'll read it back again."


class RuleBasedOracle:
    """Reads the six answers positionally and looks for a yes after the summary."""

    async def extract(self, transcript: Sequence[TranscriptTurn]) -> ExtractionResult:
        answers = _user_answers(transcript)
        fields = {field: value for (field, _), value in zip(QUESTIONS, answers)}
        summary_at = _summary_shown(transcript)
        complete = len(fields) == len(QUESTIONS) and summary_at >= 0
        after_summary = [
            t.text for t in transcript[summary_at + 1:] if t.speaker == Speaker.USER
        ] if summary_at >= 0 else []
        confirmed = complete and any(
            text.lower().startswith(AFFIRMATIVES) for text in after_summary
        )
        return ExtractionResult(**fields, is_complete=complete, is_confirmed=confirmed)


class ConsoleSession:
    """Runs a chat intake in the terminal against an in-memory ledger."""

    def __init__(self) -> None:
        self.ledger = BookingLedger(InMemoryStore())
        self.example_slot = f"{next_n_days(2)[1]} 09:00"
        self.chat = ChatSession(
            self.ledger,
            ScriptedProvider(self.example_slot),
            RuleBasedOracle(),
            session_id="CHAT-demo",
        )

    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            "Jo Citizen",
            "0412 345 678",
            "Repair / Maintenance",
            "Ducted unit blowing warm air",
            "12 Elm St, Braddon",
            "{slot}",
            "yes, go ahead",
        ],
        "declined": [
            "Sam Lee",
            "0400 111 222",
            "Installation",
            "New split system in the lounge",
            "4 Gum Rd, Kingston",
            "{slot}",
            "no, hold off for now",
        ],
    }

    def agent_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[Assistant]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  HVAC DISPATCH - {title}{RESET}")
        print(f"{BOLD}  Business: {settings.business.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    async def _exchange(self, text: str) -> None:
        for message in await self.chat.send(text):
            self.agent_say(message)
        self.system_log(f"Phase: {self.chat.gatekeeper.phase.value}")

    async def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        self.system_log(self.ledger.availability_summary_text(days=3))
        self.agent_say(await self.chat.open())
        for step in steps:
            if self.chat.closed:
                break
            text = step.format(slot=self.example_slot)
            print(f"\n{BLUE}[Customer] {RESET}{text}")
            await self._exchange(text)

        self._report()
        if self.chat.booking is not None:
            self._walk_lifecycle(self.chat.booking.id)

    async def run(self) -> None:
        self._banner("Console Demo")
        print(f"{BOLD}  Type 'quit' to exit{RESET}\n")
        self.agent_say(await self.chat.open())
        while not self.chat.closed:
            user_input = input(f"\n{BLUE}[Customer] {RESET}").strip()
            if user_input.lower() in ("quit", "exit", "q"):
                self.chat.close()
                print(f"\n{DIM}Session ended.{RESET}")
                break
            await self._exchange(user_input)
        self._report()

    def _report(self) -> None:
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{DIM}  Phase trace: {' -> '.join(self.chat.gatekeeper.get_phase_trace())}{RESET}")
        booking = self.chat.booking
        if booking is None:
            print(f"{YELLOW}  No booking committed.{RESET}")
        else:
            staff = ", ".join(booking.assigned_staff_ids) or "unassigned"
            print(f"{BOLD}  Booking {booking.id}: {booking.status.value} ({staff}){RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def _walk_lifecycle(self, booking_id: str) -> None:
        """Start, attempt completion without sign-off, complete, invoice."""
        self.ledger.start(booking_id)
        self.system_log("Technician started the job")
        try:
            self.ledger.complete(booking_id, CompletionReport(work_performed="Regassed"))
        except DispatchError as e:
            self.system_log(f"{RED}Completion refused: {e}{RESET}")

        self.ledger.set_labor_hours(booking_id, 2.5)
        self.ledger.add_equipment(booking_id, "Ducted Zone Controller")
        booking = self.ledger.complete(booking_id, CompletionReport(
            work_performed="Replaced zone controller, regassed",
            safety_checks=SafetyChecks(electrical=True, leak_check=True),
            customer_signature="J. Citizen",
        ))
        self.system_log(f"Completed at {booking.completion_report.completed_at}")

        booking = self.ledger.commit_charges(booking_id)
        for item in booking.line_items:
            self.system_log(f"{item.description:<40} {item.amount:>10.2f}")
        summary = derive(booking, self.ledger.business)
        self.system_log(f"{'Total (inc. GST)':<40} {summary.total:>10.2f}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        asyncio.run(session.run_scenario(args.scenario))
    else:
        asyncio.run(session.run())


if __name__ == "__main__":
    main()
