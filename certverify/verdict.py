"""
Final verdict policy.

``VERDICT_TABLE`` is the one place the match status and the chain result are
combined. A chain attestation can only annotate a valid match; it never lifts
a suspicious or invalid one.
"""

from certverify.models import ChainResult, FinalStatus, MatchResult, MatchStatus, Verdict

# (match status, chain verified) -> final status
VERDICT_TABLE = {
    (MatchStatus.VALID, True): FinalStatus.VALID,
    (MatchStatus.VALID, False): FinalStatus.VALID_NO_BLOCKCHAIN,
    (MatchStatus.SUSPICIOUS, True): FinalStatus.SUSPICIOUS,
    (MatchStatus.SUSPICIOUS, False): FinalStatus.SUSPICIOUS,
    (MatchStatus.INVALID, True): FinalStatus.INVALID,
    (MatchStatus.INVALID, False): FinalStatus.INVALID,
}

# final status -> (color, label) for the result view
PRESENTATION = {
    FinalStatus.VALID: ('green', 'Certificate is valid and confirmed on blockchain'),
    FinalStatus.VALID_NO_BLOCKCHAIN: ('orange', 'Certificate matches records but is not confirmed on blockchain'),
    FinalStatus.SUSPICIOUS: ('yellow', 'Certificate is suspicious: some fields do not match'),
    FinalStatus.INVALID: ('red', 'Certificate is invalid'),
}


def compose(db_result: MatchResult, chain_result: ChainResult) -> Verdict:
    final_status = VERDICT_TABLE[(db_result.status, bool(chain_result.verified))]
    color, label = PRESENTATION[final_status]
    return Verdict(final_status=final_status, color=color, label=label)
