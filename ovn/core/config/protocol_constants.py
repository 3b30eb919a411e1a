# ovn/core/config/protocol_constants.py

from typing import Final, Tuple

class ProtocolConstants:
    """
    Vocabulario inmutable del overlay.
    Centraliza:
    1. Formatos binarios (BEEF, claves).
    2. Espacios de nombres (protocolID) usados en la vinculación de firmas.
    3. Identificadores de tópicos y servicios de consulta.
    """

    # ==========================================================================
    # 1. FORMATOS BINARIOS
    # ==========================================================================
    BEEF_V1: Final[int]      = 4022206465   # 0100BEEF (u32 LE)
    BEEF_V2: Final[int]      = 4022206466   # 0200BEEF
    ATOMIC_BEEF: Final[int]  = 0x01010101

    BEEF_TX_RAW: Final[int]            = 0
    BEEF_TX_RAW_AND_BUMP: Final[int]   = 1
    BEEF_TX_TXID_ONLY: Final[int]      = 2

    COMPRESSED_PUBKEY_SIZE: Final[int] = 33
    TXID_SIZE: Final[int]              = 32

    # Clave pública 'anyone' (escalar privado = 1)
    ANYONE_PRIVATE_KEY: Final[int] = 1

    # ==========================================================================
    # 2. ESPACIOS DE NOMBRES (securityLevel, protocolo)
    # ==========================================================================
    NS_IDENTITY: Final[Tuple[int, str]]             = (1, "identity")
    NS_WALLET_CONFIG: Final[Tuple[int, str]]        = (1, "wallet config option")
    NS_MESSAGEBOX: Final[Tuple[int, str]]           = (1, "messagebox advertisement")
    NS_APPS: Final[Tuple[int, str]]                 = (1, "metanet apps")
    NS_CERT_SIGNATURE: Final[Tuple[int, str]]       = (2, "certificate signature")
    NS_CERT_FIELD_ENCRYPTION: Final[Tuple[int, str]] = (2, "certificate field encryption")

    DEFAULT_KEY_ID: Final[str] = "1"

    # ==========================================================================
    # 3. TOKENS FUNGIBLES
    # ==========================================================================
    MINT_SENTINEL: Final[str] = "___mint___"
    TOKEN_AMOUNT_SIZE: Final[int] = 8

    # ==========================================================================
    # 4. TÓPICOS / SERVICIOS
    # ==========================================================================
    TM_IDENTITY: Final[str]         = "tm_identity"
    LS_IDENTITY: Final[str]         = "ls_identity"
    TM_WALLET_CONFIG: Final[str]    = "tm_walletconfig"
    LS_WALLET_CONFIG: Final[str]    = "ls_walletconfig"
    TM_MESSAGEBOX: Final[str]       = "tm_messagebox"
    LS_MESSAGEBOX: Final[str]       = "ls_messagebox"
    TM_APPS: Final[str]             = "tm_apps"
    LS_APPS: Final[str]             = "ls_apps"
    TM_TOKEN_DEMO: Final[str]       = "tm_tokendemo"
    LS_TOKEN_DEMO: Final[str]       = "ls_tokendemo"
    TM_ANY: Final[str]              = "tm_anytx"
    LS_ANY: Final[str]              = "ls_anytx"
    TM_FRACTIONALIZE: Final[str]    = "tm_fractionalize"
    LS_FRACTIONALIZE: Final[str]    = "ls_fractionalize"
    TM_SUPPLY_CHAIN: Final[str]     = "tm_supplychain"
    LS_SUPPLY_CHAIN: Final[str]     = "ls_supplychain"
    TM_SLACK_THREAD: Final[str]     = "tm_slackthread"
    LS_SLACK_THREAD: Final[str]     = "ls_slackthread"
    TM_DESKTOP_INTEGRITY: Final[str] = "tm_desktopintegrity"
    LS_DESKTOP_INTEGRITY: Final[str] = "ls_desktopintegrity"
    TM_MONSTER_BATTLE: Final[str]   = "tm_monsterbattle"
    LS_MONSTER_BATTLE: Final[str]   = "ls_monsterbattle"
