"""Stake State."""

from enum import Enum, IntEnum
from typing import Dict, NamedTuple, Optional

from construct import Bytes, Container, Padded, Pass, Struct, Switch  # type: ignore
from construct import Float64l, Int8ul, Int32ul, Int64sl, Int64ul  # type: ignore

from solders.pubkey import Pubkey

from stake.constants import DEFAULT_WARMUP_COOLDOWN_RATE, EPOCH_MAX, STAKE_LEN

PUBLIC_KEY_LAYOUT = Bytes(32)


class Lockup(NamedTuple):
    """Lockup for a stake account."""
    unix_timestamp: int
    epoch: int
    custodian: Pubkey

    @classmethod
    def decode_container(cls, container: Container):
        return Lockup(
            unix_timestamp=container['unix_timestamp'],
            epoch=container['epoch'],
            custodian=Pubkey(container['custodian']),
        )

    def as_bytes_dict(self) -> Dict:
        self_dict = self._asdict()
        self_dict['custodian'] = bytes(self_dict['custodian'])
        return self_dict


class Authorized(NamedTuple):
    """Define who is authorized to change a stake."""
    staker: Pubkey
    withdrawer: Pubkey

    @classmethod
    def decode_container(cls, container: Container):
        return Authorized(
            staker=Pubkey(container['staker']),
            withdrawer=Pubkey(container['withdrawer']),
        )

    def as_bytes_dict(self) -> Dict:
        return {
            'staker': bytes(self.staker),
            'withdrawer': bytes(self.withdrawer),
        }


class StakeAuthorize(IntEnum):
    """Stake Authorization Types."""
    STAKER = 0
    WITHDRAWER = 1


class StakeStateType(IntEnum):
    """Stake State Types."""
    UNINITIALIZED = 0
    INITIALIZED = 1
    STAKE = 2
    REWARDS_POOL = 3


class StakeStatus(Enum):
    """Where a delegation is in its lifecycle at a given epoch."""
    INACTIVE = "inactive"
    ACTIVATING = "activating"
    ACTIVE = "active"
    DEACTIVATING = "deactivating"


class Meta(NamedTuple):
    rent_exempt_reserve: int
    authorized: Authorized
    lockup: Lockup

    @classmethod
    def decode_container(cls, container: Container):
        return Meta(
            rent_exempt_reserve=container['rent_exempt_reserve'],
            authorized=Authorized.decode_container(container['authorized']),
            lockup=Lockup.decode_container(container['lockup']),
        )

    def as_bytes_dict(self) -> Dict:
        return {
            'rent_exempt_reserve': self.rent_exempt_reserve,
            'authorized': self.authorized.as_bytes_dict(),
            'lockup': self.lockup.as_bytes_dict(),
        }


class Delegation(NamedTuple):
    """Stake delegated to a vote account."""
    voter_pubkey: Pubkey
    stake: int
    activation_epoch: int
    deactivation_epoch: int = EPOCH_MAX
    warmup_cooldown_rate: float = DEFAULT_WARMUP_COOLDOWN_RATE

    @classmethod
    def decode_container(cls, container: Container):
        return Delegation(
            voter_pubkey=Pubkey(container['voter_pubkey']),
            stake=container['stake'],
            activation_epoch=container['activation_epoch'],
            deactivation_epoch=container['deactivation_epoch'],
            warmup_cooldown_rate=container['warmup_cooldown_rate'],
        )

    def as_bytes_dict(self) -> Dict:
        self_dict = self._asdict()
        self_dict['voter_pubkey'] = bytes(self_dict['voter_pubkey'])
        return self_dict

    def status(self, epoch: int) -> StakeStatus:
        """Activation status at ``epoch``.

        Stake becomes fully effective at the first epoch boundary after it was
        delegated, and fully ineffective at the first boundary after it was
        deactivated; there is no partial warmup or cooldown.
        """
        if self.deactivation_epoch != EPOCH_MAX:
            if epoch > self.deactivation_epoch or self.activation_epoch == self.deactivation_epoch:
                return StakeStatus.INACTIVE
            return StakeStatus.DEACTIVATING
        if self.activation_epoch == EPOCH_MAX or epoch > self.activation_epoch:
            return StakeStatus.ACTIVE
        return StakeStatus.ACTIVATING

    def effective_stake(self, epoch: int) -> int:
        if self.status(epoch) in (StakeStatus.ACTIVE, StakeStatus.DEACTIVATING):
            return self.stake
        return 0


class Stake(NamedTuple):
    delegation: Delegation
    credits_observed: int = 0

    @classmethod
    def decode_container(cls, container: Container):
        return Stake(
            delegation=Delegation.decode_container(container['delegation']),
            credits_observed=container['credits_observed'],
        )

    def as_bytes_dict(self) -> Dict:
        return {
            'delegation': self.delegation.as_bytes_dict(),
            'credits_observed': self.credits_observed,
        }


class StakeState(NamedTuple):
    """Contents of a stake account."""
    state_type: StakeStateType
    meta: Optional[Meta] = None
    stake: Optional[Stake] = None
    stake_flags: int = 0

    @classmethod
    def decode(cls, data: bytes):
        parsed = STAKE_STATE_LAYOUT.parse(data)
        state_type = StakeStateType(parsed['state_type'])
        state = parsed['state']
        if state_type == StakeStateType.INITIALIZED:
            return StakeState(state_type=state_type, meta=Meta.decode_container(state))
        if state_type == StakeStateType.STAKE:
            return StakeState(
                state_type=state_type,
                meta=Meta.decode_container(state['meta']),
                stake=Stake.decode_container(state['stake']),
                stake_flags=state['stake_flags'],
            )
        return StakeState(state_type=state_type)

    def serialize(self) -> bytes:
        if self.state_type == StakeStateType.INITIALIZED:
            state = self.meta.as_bytes_dict()
        elif self.state_type == StakeStateType.STAKE:
            state = {
                'meta': self.meta.as_bytes_dict(),
                'stake': self.stake.as_bytes_dict(),
                'stake_flags': self.stake_flags,
            }
        else:
            state = None
        return STAKE_STATE_LAYOUT.build(dict(state_type=self.state_type, state=state))

    def status(self, epoch: int) -> StakeStatus:
        """Activation status; accounts without a delegation are inactive."""
        if self.stake is None:
            return StakeStatus.INACTIVE
        return self.stake.delegation.status(epoch)


LOCKUP_LAYOUT = Struct(
    "unix_timestamp" / Int64sl,
    "epoch" / Int64ul,
    "custodian" / PUBLIC_KEY_LAYOUT,
)


AUTHORIZED_LAYOUT = Struct(
    "staker" / PUBLIC_KEY_LAYOUT,
    "withdrawer" / PUBLIC_KEY_LAYOUT,
)

META_LAYOUT = Struct(
    "rent_exempt_reserve" / Int64ul,
    "authorized" / AUTHORIZED_LAYOUT,
    "lockup" / LOCKUP_LAYOUT,
)

DELEGATION_LAYOUT = Struct(
    "voter_pubkey" / PUBLIC_KEY_LAYOUT,
    "stake" / Int64ul,
    "activation_epoch" / Int64ul,
    "deactivation_epoch" / Int64ul,
    "warmup_cooldown_rate" / Float64l,
)

STAKE_LAYOUT = Struct(
    "delegation" / DELEGATION_LAYOUT,
    "credits_observed" / Int64ul,
)

STAKE_AND_META_LAYOUT = Struct(
    "meta" / META_LAYOUT,
    "stake" / STAKE_LAYOUT,
    "stake_flags" / Int8ul,
)

STAKE_STATE_LAYOUT = Padded(
    STAKE_LEN,
    Struct(
        "state_type" / Int32ul,
        "state"
        / Switch(
            lambda this: this.state_type,
            {
                StakeStateType.UNINITIALIZED: Pass,
                StakeStateType.INITIALIZED: META_LAYOUT,
                StakeStateType.STAKE: STAKE_AND_META_LAYOUT,
                StakeStateType.REWARDS_POOL: Pass,
            },
        ),
    ),
)
