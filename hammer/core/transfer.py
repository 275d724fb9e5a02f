"""
Funds Transfer - Native ledger, wrapped token, and safe transfers.

Conceptual Background:
---------------------
Paying someone in the native currency runs the recipient's receive hook.
A hostile recipient can reject the payment, burn resources, or try to
call back into the payer. If the payer simply failed on such a
recipient, a single bidder could block refunds and settlement forever.

FundsTransfer.safe_transfer therefore tries a chain of TransferSinks:

1. DirectTransfer: native send with a small gas stipend, enough for a
   trivial receive hook and nothing more
2. WrappedTransfer: wrap the funds into WrappedNative and transfer the
   wrapped balance, which never runs recipient code

The second sink cannot be blocked by the recipient, so safe_transfer
never fails because of recipient behavior.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from hammer.core.errors import AuctionError, InsufficientFunds, InvalidInput
from hammer.crypto import derive_address
from hammer.utils.logger import get_logger
from hammer.utils.validation import validate_address, validate_amount

logger = get_logger("transfer")

# Gas available to a receive hook on a direct transfer
DEFAULT_GAS_STIPEND = 10_000

# Gas a receive hook is charged just for being invoked
BASE_RECEIVE_COST = 2_300


class OutOfGas(Exception):
    """A receive hook used more than its stipend."""


class TransferRejected(Exception):
    """A receive hook refused the payment."""


class TransferFailed(AuctionError):
    """Every transfer sink failed."""


# =============================================================================
# Gas metering
# =============================================================================


class GasMeter:
    """Tracks gas consumed by a receive hook against a fixed limit."""

    def __init__(self, limit: int):
        self.limit = limit
        self.used = 0

    @property
    def remaining(self) -> int:
        return self.limit - self.used

    def consume(self, amount: int) -> None:
        self.used += amount
        if self.used > self.limit:
            raise OutOfGas(f"used {self.used} of {self.limit}")


# (sender, amount, meter) -> None; raise to refuse the payment
ReceiveHook = Callable[[str, int, GasMeter], None]


class Checkpointable(Protocol):
    """State that can be captured and put back around a receive hook."""

    def checkpoint(self) -> Any:
        ...

    def restore(self, state: Any) -> None:
        ...


# =============================================================================
# Native Ledger
# =============================================================================


class NativeLedger:
    """
    Balances in the native currency.

    Accounts may register a receive hook that runs whenever they are
    paid through send(). If the hook raises, the payment is rolled back
    and send() returns False.

    A hook may touch any state before it fails, so send() checkpoints the
    whole ledger, plus every tracked book (see track()), before running
    it and restores the checkpoint on failure.
    """

    def __init__(self):
        self.balances: Dict[str, int] = {}
        self.receive_hooks: Dict[str, ReceiveHook] = {}
        self._tracked: List[Checkpointable] = []

    def balance_of(self, address: str) -> int:
        return self.balances.get(address, 0)

    def mint(self, address: str, amount: int) -> None:
        """Credit an account out of thin air (faucet / genesis)."""
        valid, err = validate_amount(amount)
        if not valid:
            raise InvalidInput(err)
        self.balances[address] = self.balance_of(address) + amount

    def set_receive_hook(self, address: str, hook: Optional[ReceiveHook]) -> None:
        """Install (or with None, remove) the code run when address is paid."""
        if hook is None:
            self.receive_hooks.pop(address, None)
        else:
            self.receive_hooks[address] = hook

    def debit(self, address: str, amount: int) -> None:
        balance = self.balance_of(address)
        if amount > balance:
            raise InsufficientFunds(f"{address} has {balance}, needs {amount}")
        self.balances[address] = balance - amount

    def credit(self, address: str, amount: int) -> None:
        self.balances[address] = self.balance_of(address) + amount

    def move(self, sender: str, to: str, amount: int) -> None:
        """Transfer without running the recipient's hook."""
        self.debit(sender, amount)
        self.credit(to, amount)

    def track(self, book: Checkpointable) -> None:
        """Include another book in the checkpoints taken around receive hooks."""
        if not any(b is book for b in self._tracked):
            self._tracked.append(book)

    def _checkpoint(self):
        return dict(self.balances), [(book, book.checkpoint()) for book in self._tracked]

    def _restore(self, checkpoint) -> None:
        balances, books = checkpoint
        self.balances.clear()
        self.balances.update(balances)
        for book, state in books:
            book.restore(state)

    def send(self, sender: str, to: str, amount: int, gas_limit: int) -> bool:
        """
        Transfer and run the recipient's receive hook under a gas limit.

        Returns:
            True if the recipient accepted, False if the transfer was
            rolled back
        """
        hook = self.receive_hooks.get(to)
        if hook is None:
            self.move(sender, to, amount)
            return True

        checkpoint = self._checkpoint()
        self.move(sender, to, amount)

        meter = GasMeter(gas_limit)
        try:
            meter.consume(BASE_RECEIVE_COST)
            hook(sender, amount, meter)
        except Exception as e:
            # Undo the payment and anything the hook did before failing
            self._restore(checkpoint)
            logger.debug(f"Receive hook of {to} failed: {type(e).__name__}: {e}")
            return False
        return True


# =============================================================================
# Wrapped Native Token
# =============================================================================


class WrappedNative:
    """
    Fungible wrapped representation of the native currency.

    Wrapped balances are plain bookkeeping: transferring them never runs
    recipient code. Native funds backing them sit in this contract's own
    ledger account.
    """

    def __init__(self, ledger: NativeLedger, address: Optional[str] = None):
        self.ledger = ledger
        self.address = address or derive_address("hammer.wrapped-native")
        self.balances: Dict[str, int] = {}
        self.total_supply = 0
        ledger.track(self)

    def checkpoint(self):
        return dict(self.balances), self.total_supply

    def restore(self, state) -> None:
        balances, self.total_supply = state
        self.balances.clear()
        self.balances.update(balances)

    def balance_of(self, address: str) -> int:
        return self.balances.get(address, 0)

    def deposit(self, account: str, amount: int) -> None:
        """Lock native funds from account and mint the same wrapped amount."""
        self.ledger.move(account, self.address, amount)
        self.balances[account] = self.balance_of(account) + amount
        self.total_supply += amount

    wrap = deposit

    def withdraw(self, account: str, amount: int) -> None:
        """Burn wrapped balance and release the native funds to account."""
        balance = self.balance_of(account)
        if amount > balance:
            raise InsufficientFunds(f"{account} has {balance} wrapped, needs {amount}")
        self.balances[account] = balance - amount
        self.total_supply -= amount
        self.ledger.move(self.address, account, amount)

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        balance = self.balance_of(sender)
        if amount > balance:
            raise InsufficientFunds(f"{sender} has {balance} wrapped, needs {amount}")
        self.balances[sender] = balance - amount
        self.balances[to] = self.balance_of(to) + amount
        return True


# =============================================================================
# Transfer Sinks
# =============================================================================


class TransferSink(Protocol):
    """One way of delivering funds. Returns False when delivery failed."""

    name: str

    def send(self, sender: str, to: str, amount: int) -> bool:
        ...


class DirectTransfer:
    """Native send bounded by a gas stipend."""

    name = "direct"

    def __init__(self, ledger: NativeLedger, gas_stipend: int = DEFAULT_GAS_STIPEND):
        self.ledger = ledger
        self.gas_stipend = gas_stipend

    def send(self, sender: str, to: str, amount: int) -> bool:
        return self.ledger.send(sender, to, amount, gas_limit=self.gas_stipend)


class WrappedTransfer:
    """Wrap the funds and transfer the wrapped balance."""

    name = "wrapped"

    def __init__(self, wrapped: WrappedNative):
        self.wrapped = wrapped

    def send(self, sender: str, to: str, amount: int) -> bool:
        self.wrapped.deposit(sender, amount)
        return self.wrapped.transfer(sender, to, amount)


@dataclass(frozen=True)
class TransferReceipt:
    """How a payment was delivered."""
    to: str
    amount: int
    sink: str  # name of the sink that delivered, "" for zero amounts


class FundsTransfer:
    """
    Safe transfer with fallback.

    Sinks are tried in order; the first one returning True wins.
    """

    def __init__(self, sinks: Sequence[TransferSink]):
        if not sinks:
            raise ValueError("At least one transfer sink is required")
        self.sinks: List[TransferSink] = list(sinks)

    @classmethod
    def with_fallback(
        cls,
        ledger: NativeLedger,
        wrapped: WrappedNative,
        gas_stipend: int = DEFAULT_GAS_STIPEND,
    ) -> "FundsTransfer":
        """Direct transfer first, wrapped transfer as fallback."""
        return cls([DirectTransfer(ledger, gas_stipend), WrappedTransfer(wrapped)])

    def safe_transfer(self, sender: str, to: str, amount: int) -> TransferReceipt:
        """
        Deliver `amount` from sender to `to`.

        Raises:
            InvalidInput: On a malformed address or amount
            InsufficientFunds: If sender cannot cover the amount
            TransferFailed: If every sink declined
        """
        valid, err = validate_address(to, "to")
        if not valid:
            raise InvalidInput(err)
        valid, err = validate_amount(amount)
        if not valid:
            raise InvalidInput(err)

        if amount == 0:
            return TransferReceipt(to=to, amount=0, sink="")

        for position, sink in enumerate(self.sinks):
            if sink.send(sender, to, amount):
                if position > 0:
                    logger.warning(f"Direct payment to {to} failed; delivered {amount} via {sink.name}")
                else:
                    logger.debug(f"Paid {amount} to {to} via {sink.name}")
                return TransferReceipt(to=to, amount=amount, sink=sink.name)

        raise TransferFailed(f"Could not deliver {amount} to {to}")
