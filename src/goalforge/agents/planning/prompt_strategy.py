"""
Strategy for run prompt generation.

Defines the contract (``RunPromptStrategy``) and a sensible default
(``DefaultRunPromptStrategy``) that asks for JSON task arrays.

To customise prompts, implement the protocol and inject via
``AutonomousAgent(prompt_strategy=MyStrategy())``.
"""

from __future__ import annotations

from typing import List, Protocol, Sequence, Tuple, runtime_checkable


@runtime_checkable
class RunPromptStrategy(Protocol):
    """Contract for planning and execution prompts."""

    def build_planning_prompt(self, goal: str, language: str) -> str:
        """Prompt that turns a goal into an initial task list."""
        ...

    def build_execution_prompt(
        self,
        goal: str,
        language: str,
        task: str,
        completed: Sequence[Tuple[str, str]],
        max_new_tasks: int,
    ) -> str:
        """Prompt that executes one task.

        ``completed`` holds ``(description, result)`` pairs of the most
        recent completed tasks, oldest first.
        """
        ...


class DefaultRunPromptStrategy:
    """Default prompts.  Works out of the box."""

    def build_planning_prompt(self, goal: str, language: str) -> str:
        return (
            "You are an autonomous task creation AI.\n"
            f"Your objective is: {goal}\n\n"
            "Create a list of zero to three concrete tasks that, executed in "
            "order, will accomplish the objective.\n"
            f"{self._language_directive(language)}\n\n"
            "Return ONLY a JSON array of strings, for example:\n"
            '["Research the topic", "Summarize the findings"]'
        )

    def build_execution_prompt(
        self,
        goal: str,
        language: str,
        task: str,
        completed: Sequence[Tuple[str, str]],
        max_new_tasks: int,
    ) -> str:
        lines: List[str] = [
            "You are an autonomous task execution AI.",
            f"Your overall objective is: {goal}",
            "",
        ]
        if completed:
            lines.append("Results of the most recent completed tasks:")
            for description, result in completed:
                lines.append(f"- {description}: {result}")
            lines.append("")
        lines += [
            f"Execute this task now: {task}",
            self._language_directive(language),
            "",
            "Respond with the result of the task.",
        ]
        if max_new_tasks > 0:
            lines += [
                "If, and only if, more work is needed to reach the objective, "
                "end your response with a line reading 'NEW TASKS:' followed by "
                f"a JSON array of at most {max_new_tasks} new task descriptions. "
                "Do not repeat tasks that are already done.",
            ]
        return "\n".join(lines)

    # ------------------------------------------------------------------
    @staticmethod
    def _language_directive(language: str) -> str:
        return f"Respond in {language or 'English'}."
