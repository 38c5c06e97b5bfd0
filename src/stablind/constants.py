from __future__ import annotations

# Program ids (base58)
SSS_TOKEN_PROGRAM_ID = "2D8s3bH6vD3LG7wqzvpSvYFysYoSK4wwggHCptaKFJJQ"
SSS_HOOK_PROGRAM_ID = "F2of7agMFET8v3verXe3e6Hmfd71t833RjPxEjs5wRdd"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"

# Discriminator namespaces
INSTRUCTION_NAMESPACE = "global"
EVENT_NAMESPACE = "event"
DISCRIMINATOR_SIZE = 8

# PDA seed prefixes
STABLECOIN_SEED = b"stablecoin"
ROLE_SEED = b"role"
MINTER_SEED = b"minter"
BLACKLIST_SEED = b"blacklist"
MULTISIG_SEED = b"multisig"
PROPOSAL_SEED = b"proposal"
TIMELOCK_CONFIG_SEED = b"timelock_config"
TIMELOCK_SEED = b"timelock"
TRANSFER_LIMIT_SEED = b"transfer_limit"

# Runtime limits for program-derived addresses
MAX_SEEDS = 16
MAX_SEED_LEN = 32
PDA_MARKER = b"ProgramDerivedAddress"

# Log lines carrying inline event data: "Program data: <base64>"
PROGRAM_DATA_PREFIX = "Program data: "

# Wildcard subscription for webhooks
WILDCARD = "*"
