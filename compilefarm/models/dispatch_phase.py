from enum import Enum


class DispatchPhase(Enum):
    INIT = "INIT"
    CONNECTING = "CONNECTING"
    AUTHENTICATING = "AUTHENTICATING"
    SENDING_HEADER = "SENDING_HEADER"
    PREPROCESSING = "PREPROCESSING"
    SENDING_PAYLOAD = "SENDING_PAYLOAD"
    AWAITING_RESULT = "AWAITING_RESULT"
    DONE = "DONE"
    CLEANUP = "CLEANUP"
