"""tsserver command names used by the client."""

# File lifecycle
OPEN = "open"
CLOSE = "close"
RELOAD = "reload"
RELOAD_PROJECTS = "reloadProjects"

# Navigation and information
QUICK_INFO = "quickinfo"
DEFINITION = "definition"
TYPE_DEFINITION = "typeDefinition"
REFERENCES = "references"
SIGNATURE_HELP = "signatureHelp"
RENAME = "rename"
NAVTREE = "navtree"
NAVTO = "navto"
PROJECT_INFO = "projectInfo"

# Completions
COMPLETION_INFO = "completionInfo"
COMPLETION_ENTRY_DETAILS = "completionEntryDetails"

# Diagnostics
SEMANTIC_DIAGNOSTICS_SYNC = "semanticDiagnosticsSync"
SYNTACTIC_DIAGNOSTICS_SYNC = "syntacticDiagnosticsSync"
SUGGESTION_DIAGNOSTICS_SYNC = "suggestionDiagnosticsSync"
GETERR_FOR_PROJECT = "geterrForProject"

# Code actions
GET_CODE_FIXES = "getCodeFixes"
GET_SUPPORTED_CODE_FIXES = "getSupportedCodeFixes"
GET_COMBINED_CODE_FIX = "getCombinedCodeFix"
GET_APPLICABLE_REFACTORS = "getApplicableRefactors"
ORGANIZE_IMPORTS = "organizeImports"
GET_EDITS_FOR_FILE_RENAME = "getEditsForFileRename"

# Commands tsserver never answers with a response message. geterrForProject
# reports through diagnostic events closed by requestCompleted instead.
NO_REPLY_COMMANDS = frozenset({
    OPEN,
    CLOSE,
    RELOAD_PROJECTS,
    GETERR_FOR_PROJECT,
})


def expects_reply(command: str) -> bool:
    """Check whether tsserver sends a response for ``command``."""
    return command not in NO_REPLY_COMMANDS
