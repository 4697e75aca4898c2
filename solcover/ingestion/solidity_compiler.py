"""Solidity compiler integration: AST extraction and instrumented builds."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import solcx
from solcx.exceptions import SolcError

from solcover.core.config import get_settings
from solcover.core.errors import CompilationError

logger = logging.getLogger(__name__)


@dataclass
class CompilationResult:
    """Result of compiling Solidity source code."""

    success: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    contracts: dict[str, dict[str, Any]] = field(default_factory=dict)
    sources_ast: dict[str, Any] = field(default_factory=dict)


class SolidityCompiler:
    """Drive solc through its standard JSON interface."""

    def __init__(self, version: str | None = None) -> None:
        self.version = version or get_settings().solc_version or None

    def parse_sources(self, source_files: dict[str, str]) -> dict[str, dict[str, Any]]:
        """Return the compact JSON AST of every file, without semantic analysis.

        Raises:
            CompilationError: if solc reports syntax errors
        """
        standard_input = {
            "language": "Solidity",
            "sources": {
                name: {"content": code} for name, code in source_files.items()
            },
            "settings": {
                "stopAfter": "parsing",
                "outputSelection": {"*": {"": ["ast"]}},
            },
        }

        try:
            output = solcx.compile_standard(
                standard_input,
                solc_version=self._resolve_version(source_files),
                allow_paths=".",
            )
        except SolcError as exc:
            raise CompilationError([str(exc)]) from exc

        result = self._parse_output(output)
        if not result.success:
            raise CompilationError(result.errors)

        missing = set(source_files) - set(result.sources_ast)
        if missing:
            raise CompilationError([f"solc returned no AST for {name}" for name in sorted(missing)])
        return result.sources_ast

    def compile_files(
        self,
        source_files: dict[str, str],
        optimization: bool = True,
        optimization_runs: int = 200,
    ) -> CompilationResult:
        """Compile multiple Solidity source files.

        Used to check that instrumented sources still build; failures are
        reported in the result rather than raised.
        """
        try:
            standard_input = {
                "language": "Solidity",
                "sources": {
                    name: {"content": code} for name, code in source_files.items()
                },
                "settings": {
                    "optimizer": {
                        "enabled": optimization,
                        "runs": optimization_runs,
                    },
                    "outputSelection": {
                        "*": {
                            "*": ["abi", "evm.bytecode.object"],
                        }
                    },
                },
            }

            output = solcx.compile_standard(
                standard_input,
                solc_version=self._resolve_version(source_files),
                allow_paths=".",
            )

            return self._parse_output(output)

        except SolcError as e:
            return CompilationResult(
                success=False,
                errors=[str(e)],
            )

    def _resolve_version(self, source_files: dict[str, str]) -> str:
        solc_version = self.version
        if not solc_version:
            for source in source_files.values():
                solc_version = self._detect_version(source)
                if solc_version:
                    break

        if not solc_version:
            solc_version = get_settings().solc_default_version

        if solc_version not in {str(v) for v in solcx.get_installed_solc_versions()}:
            logger.info("Installing solc %s", solc_version)
            solcx.install_solc(solc_version)
        return solc_version

    def _parse_output(self, output: dict[str, Any]) -> CompilationResult:
        """Parse solc standard JSON output into CompilationResult."""
        errors: list[str] = []
        warnings: list[str] = []
        sources_ast: dict[str, Any] = {}

        for error in output.get("errors", []):
            if error.get("severity") == "error":
                errors.append(error.get("formattedMessage", error.get("message", "")))
            else:
                warnings.append(error.get("formattedMessage", error.get("message", "")))

        for source_name, source_data in output.get("sources", {}).items():
            if source_data.get("ast"):
                sources_ast[source_name] = source_data["ast"]

        return CompilationResult(
            success=len(errors) == 0,
            errors=errors,
            warnings=warnings,
            contracts=output.get("contracts", {}),
            sources_ast=sources_ast,
        )

    @staticmethod
    def _detect_version(source_code: str) -> str | None:
        """Detect Solidity compiler version from pragma statement."""
        match = re.search(r"pragma\s+solidity\s+[\^~>=<]*\s*([\d.]+)", source_code)
        if match:
            return match.group(1)
        return None
