from __future__ import annotations


def encode_join_choice(game_id: str) -> str:
    """
    Encode a "join this game" callback.

    Format: join:{game_id}
    """

    return f"join:{game_id}"


def parse_join_choice(data: str) -> str:
    parts = data.split(":")
    if len(parts) != 2 or parts[0] != "join" or not parts[1]:
        raise ValueError(f"Invalid join choice callback data: {data}")

    return parts[1]


def encode_send_confirmation(recipient_ref: str, amount: int, accepted: bool) -> str:
    """
    Encode a confirmation/cancel callback for a pending transfer.

    Format:
      send:yes:{recipient_ref}:{amount}
      send:no:{recipient_ref}:{amount}
    """

    answer = "yes" if accepted else "no"
    return f"send:{answer}:{recipient_ref}:{amount}"


def parse_send_confirmation(data: str) -> tuple[bool, str, int]:
    parts = data.split(":")
    if len(parts) != 4 or parts[0] != "send" or parts[1] not in ("yes", "no"):
        raise ValueError(f"Invalid send confirmation callback data: {data}")

    accepted = parts[1] == "yes"
    recipient_ref = parts[2]
    amount = int(parts[3])
    return accepted, recipient_ref, amount
