"""
EXPLAIN support: describe what a statement would do without running it.

Two renderings share one visitor base:
- Explainer: the full "EXPLAIN: Would ..." sentence returned by EXPLAIN
- Summarizer: the short one-line form used when listing a script
"""

from typing import List

from ..ast import (
    AstVisitor, Command, Script,
    QueryCommand, DeleteFilesCommand, KillProcessCommand,
    EnterFolder, EnterFile, ExitContext, ResetContext, ShowCommand,
    LetStatement, ForLoop, IfStatement, LifeMonitor, PrintCommand,
    CreateContainer, SwitchContainer, ListContainers, DestroyContainer, ExportContainer,
    ExplainCommand,
)


def _fields(query: QueryCommand) -> str:
    if query.fields is None:
        return "*"
    return "[" + ", ".join(query.fields) + "]"


def _filtering(where) -> str:
    return " with filtering" if where is not None else ""


class Explainer(AstVisitor):
    """Produces the sentence EXPLAIN prints for a statement."""

    def explain(self, command: Command) -> str:
        return "EXPLAIN: " + command.accept(self)

    def visit_QueryCommand(self, node: QueryCommand) -> str:
        source = f" from path '{node.from_path}'" if node.from_path is not None else ""
        return f"Would query {node.target} with fields {_fields(node)}{source}{_filtering(node.where)}"

    def visit_DeleteFilesCommand(self, node: DeleteFilesCommand) -> str:
        scope = "with filtering" if node.where is not None else "(all files - DANGEROUS!)"
        return f"Would delete files from '{node.path}' {scope}"

    def visit_KillProcessCommand(self, node: KillProcessCommand) -> str:
        return "Would kill processes matching filter criteria"

    def visit_EnterFolder(self, node: EnterFolder) -> str:
        return f"Would enter folder '{node.path}'"

    def visit_EnterFile(self, node: EnterFile) -> str:
        return f"Would enter file '{node.path}'"

    def visit_ExitContext(self, node: ExitContext) -> str:
        return "Would exit current context"

    def visit_ResetContext(self, node: ResetContext) -> str:
        return "Would reset context to initial state"

    def visit_ShowCommand(self, node: ShowCommand) -> str:
        return f"Would show {node.target}"

    def visit_LetStatement(self, node: LetStatement) -> str:
        return f"Would set variable '{node.name}' to {node.value}"

    def visit_ForLoop(self, node: ForLoop) -> str:
        return (f"Would iterate '{node.variable}' over {node.source.target} query"
                f"{_filtering(node.source.where)} and execute {len(node.body)} statement(s)")

    def visit_IfStatement(self, node: IfStatement) -> str:
        text = (f"Would check IF {node.condition} THEN execute "
                f"{len(node.then_body)} statement(s)")
        if node.else_body is not None:
            text += f" ELSE execute {len(node.else_body)} statement(s)"
        return text

    def visit_LifeMonitor(self, node: LifeMonitor) -> str:
        return (f"Would start LIFE monitoring for {node.target} and execute "
                f"{len(node.body)} statement(s) on changes")

    def visit_PrintCommand(self, node: PrintCommand) -> str:
        return f"Would print {len(node.expressions)} expression(s)"

    def visit_CreateContainer(self, node: CreateContainer) -> str:
        flags = ""
        if node.allow_actions:
            flags += " [ALLOW ACTIONS]"
        if node.readonly:
            flags += " [READONLY]"
        return (f"Would create container '{node.name}' with {len(node.body)} "
                f"initialization statement(s){flags}")

    def visit_SwitchContainer(self, node: SwitchContainer) -> str:
        return f"Would switch to container '{node.name}'"

    def visit_ListContainers(self, node: ListContainers) -> str:
        return "Would list all containers"

    def visit_DestroyContainer(self, node: DestroyContainer) -> str:
        return f"Would destroy container '{node.name}'"

    def visit_ExportContainer(self, node: ExportContainer) -> str:
        return f"Would export container '{node.name}' to '{node.path}'"

    def visit_ExplainCommand(self, node: ExplainCommand) -> str:
        return "Nested EXPLAIN not supported"


class Summarizer(Explainer):
    """Short forms for numbered script listings."""

    def summarize(self, command: Command) -> str:
        return command.accept(self)

    def visit_QueryCommand(self, node: QueryCommand) -> str:
        text = f"SELECT {node.target} {node.field_list}"
        if node.from_path is not None:
            text += f" FROM {node.from_path}"
        return text + _filtering(node.where)

    def visit_DeleteFilesCommand(self, node: DeleteFilesCommand) -> str:
        return f"DELETE FILES FROM {node.path}{_filtering(node.where)}"

    def visit_KillProcessCommand(self, node: KillProcessCommand) -> str:
        return "KILL PROCESS with filtering"

    def visit_EnterFolder(self, node: EnterFolder) -> str:
        return f"ENTER FOLDER {node.path}"

    def visit_EnterFile(self, node: EnterFile) -> str:
        return f"ENTER FILE {node.path}"

    def visit_ExitContext(self, node: ExitContext) -> str:
        return "EXIT"

    def visit_ResetContext(self, node: ResetContext) -> str:
        return "RESET"

    def visit_ShowCommand(self, node: ShowCommand) -> str:
        return f"SHOW {node.target}"

    def visit_LetStatement(self, node: LetStatement) -> str:
        return f"LET {node.name} = {node.value}"

    def visit_ForLoop(self, node: ForLoop) -> str:
        return f"FOR {node.variable} IN {node.source.target} ({len(node.body)} statements)"

    def visit_IfStatement(self, node: IfStatement) -> str:
        else_count = len(node.else_body) if node.else_body is not None else 0
        return f"IF {node.condition} ({len(node.then_body)} then, {else_count} else)"

    def visit_LifeMonitor(self, node: LifeMonitor) -> str:
        return f"LIFE MONITOR {node.target} ({len(node.body)} statements)"

    def visit_PrintCommand(self, node: PrintCommand) -> str:
        return f"PRINT ({len(node.expressions)} expressions)"

    def visit_CreateContainer(self, node: CreateContainer) -> str:
        return f'CREATE CONTAINER "{node.name}" ({len(node.body)} statements)'

    def visit_SwitchContainer(self, node: SwitchContainer) -> str:
        return f'SWITCH CONTAINER "{node.name}"'

    def visit_ListContainers(self, node: ListContainers) -> str:
        return "LIST CONTAINERS"

    def visit_DestroyContainer(self, node: DestroyContainer) -> str:
        return f'DESTROY CONTAINER "{node.name}"'

    def visit_ExportContainer(self, node: ExportContainer) -> str:
        return f'EXPORT CONTAINER "{node.name}" TO "{node.path}"'

    def visit_ExplainCommand(self, node: ExplainCommand) -> str:
        return f"EXPLAIN {node.inner.accept(self)}"


def explain_command(command: Command) -> str:
    """The EXPLAIN sentence for one statement. Never executes anything."""
    return Explainer().explain(command)


def explain_script(script: Script) -> List[str]:
    """Numbered one-line descriptions of a script's top-level statements."""
    summarizer = Summarizer()
    return [f"{i}. {summarizer.summarize(stmt)}"
            for i, stmt in enumerate(script.statements, start=1)]
