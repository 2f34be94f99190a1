"""
Function catalog advertised to the AI.

Remote functions are executed by the automation server; their schemas are
plain data. Local functions come from the FunctionRegistry.
"""

from typing import Any, Dict, List

from gptbridge.core.constants import GENERIC_AUTOMATION_FUNCTION
from gptbridge.core.registry import FunctionRegistry

CALL_AGENT_FUNCTION: Dict[str, Any] = {
    "name": GENERIC_AUTOMATION_FUNCTION,
    "description": "Call the automation server to perform an action",
    "parameters": {
        "type": "object",
        "properties": {
            "action": {
                "type": "string",
                "description": "The action to perform on the automation server",
            },
            "parameters": {
                "type": "object",
                "description": "Parameters for the action",
                "additionalProperties": True,
            },
        },
        "required": ["action", "parameters"],
    },
}

GET_SALES_DATA_FUNCTION: Dict[str, Any] = {
    "name": "getSalesData",
    "description": "Retrieve sales data for a specific timeframe",
    "parameters": {
        "type": "object",
        "properties": {
            "timeframe": {
                "type": "string",
                "description": 'The timeframe to retrieve data for (e.g., "Q1", "2023", "last_month")',
            },
            "year": {"type": "number", "description": "The year to retrieve data for"},
            "format": {
                "type": "string",
                "description": "The format of the data",
                "enum": ["summary", "detailed", "chart"],
            },
        },
        "required": ["timeframe"],
    },
}

GET_USER_INFO_FUNCTION: Dict[str, Any] = {
    "name": "getUserInfo",
    "description": "Retrieve information about a user",
    "parameters": {
        "type": "object",
        "properties": {
            "userId": {"type": "string", "description": "The ID of the user to retrieve information for"},
            "fields": {
                "type": "array",
                "description": 'The fields to retrieve (e.g., "name", "email", "department")',
                "items": {"type": "string"},
            },
        },
        "required": ["userId"],
    },
}

CREATE_TICKET_FUNCTION: Dict[str, Any] = {
    "name": "createTicket",
    "description": "Create a new ticket in the ticketing system",
    "parameters": {
        "type": "object",
        "properties": {
            "title": {"type": "string", "description": "The title of the ticket"},
            "description": {"type": "string", "description": "The description of the ticket"},
            "priority": {
                "type": "string",
                "description": "The priority of the ticket",
                "enum": ["low", "medium", "high", "critical"],
            },
            "assignee": {"type": "string", "description": "The ID of the user to assign the ticket to"},
            "dueDate": {"type": "string", "description": "The due date of the ticket in ISO format (YYYY-MM-DD)"},
        },
        "required": ["title", "description"],
    },
}

# Functions routed to the automation server under their own name
REMOTE_FUNCTIONS: List[Dict[str, Any]] = [
    GET_SALES_DATA_FUNCTION,
    GET_USER_INFO_FUNCTION,
    CREATE_TICKET_FUNCTION,
]


# Chat actions the AI is told about; each needs a registered local handler
LOCAL_FUNCTION_NAMES: List[str] = ["sendMessage", "updateMessage", "sendDirectMessage"]


def remote_function_names() -> List[str]:
    return [schema["name"] for schema in REMOTE_FUNCTIONS]


def advertised_function_names() -> List[str]:
    """Names the catalog declares, independent of what is registered."""
    return [GENERIC_AUTOMATION_FUNCTION, *remote_function_names(), *LOCAL_FUNCTION_NAMES]


def build_catalog(registry: FunctionRegistry) -> List[Dict[str, Any]]:
    """All function schemas to advertise: generic call, remote, then local."""
    return [CALL_AGENT_FUNCTION, *REMOTE_FUNCTIONS, *registry.schemas()]
