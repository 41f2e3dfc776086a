# src/nodal_core/validation/issue_codes.py
import logging
from enum import Enum

logger = logging.getLogger(__name__)


class TopologyIssueCode(Enum):
    """
    Registry of structural issue codes and their message templates.
    Each enum member's value is a tuple: (code_str, message_template_str).
    """

    # --- Reference Node Issues (REF_...) ---
    REF_MISSING = ("REF_MISSING", "Circuit '{circuit}' has no reference node.")
    REF_MULTIPLE = ("REF_MULTIPLE", "Circuit '{circuit}' declares {count} reference nodes ({nodes}); exactly one is required.")

    # --- Node & Branch Identity Issues (ID_...) ---
    ID_NODE_LABEL_CLASH = ("ID_NODE_LABEL_CLASH", "Nodes {nodes} share the label '{label}'; node voltages could not be told apart.")
    ID_BRANCH_LABEL_CLASH = ("ID_BRANCH_LABEL_CLASH", "Branches {branches} share the label '{label}'; branch currents could not be told apart.")

    # --- Connectivity Issues (CONN_...) ---
    CONN_UNKNOWN_NODE = ("CONN_UNKNOWN_NODE", "Branch '{branch_id}' references unknown node '{node_id}'.")
    CONN_DISCONNECTED = ("CONN_DISCONNECTED", "Node(s) {nodes} have no connection to the reference node '{reference}'; their voltages are undefined.")
    CONN_DANGLING = ("CONN_DANGLING", "Node '{node_id}' has a single connection (branch '{branch_id}').")

    # --- Dependent Source Control Issues (CTRL_...) ---
    CTRL_UNKNOWN_NODE = ("CTRL_UNKNOWN_NODE", "Dependent source '{branch_id}' is controlled by the voltage of unknown node '{label}'.")
    CTRL_UNKNOWN_BRANCH = ("CTRL_UNKNOWN_BRANCH", "Dependent source '{branch_id}' is controlled by the current through unknown branch '{label}'.")
    CTRL_VOLTAGE_SOURCE_CURRENT = ("CTRL_VOLTAGE_SOURCE_CURRENT", "Dependent source '{branch_id}' is controlled by the current through voltage source '{label}', which is not a nodal quantity.")
    CTRL_SELF_REFERENCE = ("CTRL_SELF_REFERENCE", "Dependent source '{branch_id}' is controlled by its own current.")

    # --- Source Handling Info (SRC_INFO_...) ---
    SRC_INFO_FIXED_NODE = ("SRC_INFO_FIXED_NODE", "Node '{node_id}' is tied to the reference by voltage source '{branch_id}'; its voltage is set directly.")

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def template(self) -> str:
        return self.value[1]

    def format_message(self, **kwargs) -> str:
        """Formats the message template with provided keyword arguments."""
        try:
            return self.template.format(**kwargs)
        except KeyError as e:
            logger.error(f"Missing key {e} for formatting message template of {self.name} (code: {self.code}): '{self.template}'. Provided args: {kwargs}")
            return f"Error formatting message for {self.code}: Missing key {e}. Template: '{self.template}' Args: {kwargs}"
