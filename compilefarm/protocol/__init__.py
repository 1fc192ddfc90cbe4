from .compression import (
    compress as compress,
    decompress as decompress,
)
from .result_retriever import (
    ResultRetriever as ResultRetriever,
    TokenResultRetriever as TokenResultRetriever,
)
from .tokens import (
    TOKEN_LENGTH as TOKEN_LENGTH,
    TokenReader as TokenReader,
    TokenWriter as TokenWriter,
    decode_token as decode_token,
    encode_token as encode_token,
)
