"""
TokenizedBond 合约事件 ABI
"""

TRANSFER_EVENT = "Transfer"
TRANSFER_ATTEMPT_EVENT = "TransferAttempt"
COMPLIANCE_VIOLATION_EVENT = "ComplianceViolation"

# 事件名 -> 事件签名，用于计算 topic0
EVENT_SIGNATURES = {
    TRANSFER_EVENT: "Transfer(address,address,uint256)",
    TRANSFER_ATTEMPT_EVENT: "TransferAttempt(address,address,uint256,bool)",
    COMPLIANCE_VIOLATION_EVENT: "ComplianceViolation(address,string,string)",
}


def _input(name: str, type_: str, indexed: bool) -> dict:
    return {"indexed": indexed, "internalType": type_, "name": name, "type": type_}


BOND_EVENTS_ABI = [
    {
        "anonymous": False,
        "inputs": [
            _input("from", "address", True),
            _input("to", "address", True),
            _input("value", "uint256", False),
        ],
        "name": TRANSFER_EVENT,
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            _input("from", "address", True),
            _input("to", "address", True),
            _input("amount", "uint256", False),
            _input("blocked", "bool", False),
        ],
        "name": TRANSFER_ATTEMPT_EVENT,
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            _input("account", "address", True),
            _input("violationType", "string", False),
            _input("details", "string", False),
        ],
        "name": COMPLIANCE_VIOLATION_EVENT,
        "type": "event",
    },
]
