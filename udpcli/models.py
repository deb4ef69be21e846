"""
UDP CLI data models
"""
from enum import Enum
from ipaddress import IPv6Address
from typing import Optional
from pydantic import BaseModel, Field


class MessagePriority(str, Enum):
    """Outgoing message priority"""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class MessageSettings(BaseModel):
    """Settings captured when an outgoing message is allocated"""

    link_security_enabled: bool = True
    priority: MessagePriority = MessagePriority.NORMAL


class PeerEndpoint(BaseModel):
    """IPv6 address and UDP port"""

    model_config = {"frozen": True}

    address: IPv6Address
    port: int = Field(ge=0, le=0xFFFF)

    def __str__(self) -> str:
        return f"[{self.address}]:{self.port}"

    def to_sockaddr(self) -> tuple:
        return (str(self.address), self.port)

    @classmethod
    def from_sockaddr(cls, sockaddr: tuple) -> "PeerEndpoint":
        # AF_INET6 addresses carry flowinfo/scope_id after the port
        host = sockaddr[0].split("%", 1)[0]
        return cls(address=IPv6Address(host), port=sockaddr[1])


class MessageInfo(BaseModel):
    """Addressing that travels with a sent or received datagram"""

    peer: Optional[PeerEndpoint] = None
    sock: Optional[PeerEndpoint] = None
