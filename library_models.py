from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import ClassVar, Optional

from library_exceptions import CheckoutRuleViolationError, ValidationError


EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")


def _require_text(value: Optional[str], name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} cannot be empty")


def _new_member_id() -> str:
    return f"MBR-{uuid.uuid4().hex.upper()}"


# Domain Models
@dataclass
class Book:
    """
    Represents a catalog entry with a pool of identical copies.

    Attributes:
        isbn (str): Unique catalog key.
        title (str): Book title.
        author (str): Author name.
        publicationYear (int): Between 1900 and the current year.
        totalCopies (int): Number of copies owned by the library (>= 1).
        availableCopies (int): Copies currently on the shelf (defaults to totalCopies).
    """
    MIN_PUBLICATION_YEAR: ClassVar[int] = 1900

    isbn: str
    title: str
    author: str
    publicationYear: int
    totalCopies: int = 1
    availableCopies: Optional[int] = None

    def __post_init__(self) -> None:
        _require_text(self.isbn, "isbn")
        _require_text(self.title, "title")
        _require_text(self.author, "author")

        current_year = date.today().year
        if not isinstance(self.publicationYear, int) or not (
            self.MIN_PUBLICATION_YEAR <= self.publicationYear <= current_year
        ):
            raise ValidationError(
                f"publicationYear must be between {self.MIN_PUBLICATION_YEAR} and {current_year}"
            )

        if not isinstance(self.totalCopies, int) or self.totalCopies < 1:
            raise ValidationError(f"totalCopies must be at least 1 (got {self.totalCopies})")

        if self.availableCopies is None:
            self.availableCopies = self.totalCopies
        elif not 0 <= self.availableCopies <= self.totalCopies:
            raise ValidationError(
                f"availableCopies must be between 0 and {self.totalCopies} "
                f"(got {self.availableCopies})"
            )

    def borrowCopy(self) -> bool:
        """
        Takes one copy off the shelf.

        Returns:
            bool: False when no copy is available; nothing is changed in that case.
        """
        if self.availableCopies > 0:
            self.availableCopies -= 1
            return True
        return False

    def returnCopy(self) -> bool:
        """
        Puts one copy back on the shelf.

        Returns:
            bool: False when every copy is already on the shelf.
        """
        if self.availableCopies < self.totalCopies:
            self.availableCopies += 1
            return True
        return False

    def isAvailable(self) -> bool:
        return self.availableCopies > 0

    def addCopies(self, count: int) -> None:
        """
        Adds new copies to both the owned and the available pool.

        Raises:
            ValidationError: If count is negative.
        """
        if not isinstance(count, int) or count < 0:
            raise ValidationError(f"count cannot be negative (got {count})")
        self.totalCopies += count
        self.availableCopies += count

    def __str__(self) -> str:
        return (
            f"{self.isbn} | {self.title} | {self.author} ({self.publicationYear}) "
            f"| copies {self.availableCopies}/{self.totalCopies}"
        )


@dataclass
class Member:
    """
    Represents a registered borrower.

    Attributes:
        lastName (str): Family name.
        firstName (str): Given name.
        email (str): Contact address, validated against EMAIL_PATTERN.
        memberId (str): Generated membership identifier.
        registrationDate (date): Day the member was created.
        active (bool): Suspended members cannot borrow.
        currentLoans (int): Books currently borrowed (0..MAX_LOANS).
        hasLateReturns (bool): Set when a late return is recorded, cleared on settlement.
        lateDays (int): Accumulated late days not yet settled.
    """
    MAX_LOANS: ClassVar[int] = 5
    LATE_FEE_PER_DAY: ClassVar[float] = 0.50

    lastName: str
    firstName: str
    email: str
    memberId: str = field(init=False, default_factory=_new_member_id)
    registrationDate: date = field(init=False, default_factory=date.today)
    active: bool = True
    currentLoans: int = field(init=False, default=0)
    hasLateReturns: bool = field(init=False, default=False)
    lateDays: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        _require_text(self.lastName, "lastName")
        _require_text(self.firstName, "firstName")
        if not isinstance(self.email, str) or not EMAIL_PATTERN.fullmatch(self.email):
            raise ValidationError(f"email is invalid: {self.email!r}")

    @property
    def fullName(self) -> str:
        return f"{self.firstName} {self.lastName}"

    def activate(self) -> None:
        self.active = True

    def deactivate(self) -> None:
        self.active = False

    def canBorrow(self) -> bool:
        """
        Single eligibility gate checked before every borrow.

        Returns True only if the member is active, below MAX_LOANS and has
        no unsettled late return.
        """
        return self.active and self.currentLoans < self.MAX_LOANS and not self.hasLateReturns

    def addLoan(self) -> None:
        """
        Raises:
            CheckoutRuleViolationError: If canBorrow() is False.
        """
        if not self.canBorrow():
            raise CheckoutRuleViolationError(f"Member {self.memberId} cannot borrow a book.")
        self.currentLoans += 1

    def removeLoan(self) -> None:
        if self.currentLoans > 0:
            self.currentLoans -= 1

    def markLate(self) -> None:
        self.hasLateReturns = True

    def addLateDays(self, days: int) -> None:
        """
        Raises:
            ValidationError: If days is negative.
        """
        if not isinstance(days, int) or days < 0:
            raise ValidationError(f"days cannot be negative (got {days})")
        self.lateDays += days

    def computeLateFee(self) -> float:
        return round(self.lateDays * self.LATE_FEE_PER_DAY, 2)

    def clearLateStatus(self) -> None:
        """Settlement: forget the late flag and the accumulated late days."""
        self.hasLateReturns = False
        self.lateDays = 0

    def __str__(self) -> str:
        return (
            f"{self.memberId} | {self.fullName} <{self.email}> "
            f"| active={self.active} loans={self.currentLoans}"
        )


class LoanStatus(str, Enum):
    ACTIVE = "ACTIVE"
    OVERDUE = "OVERDUE"
    RETURNED = "RETURNED"


@dataclass(eq=False)
class Loan:
    """
    Binds one Book to one Member for a time window.

    The book and member are shared handles to the objects held in the
    service registries; a Loan never owns them.

    Status moves ACTIVE -> OVERDUE -> RETURNED or ACTIVE -> RETURNED.
    The ACTIVE -> OVERDUE step is lazy: it happens when isOverdue() (or
    anything built on it) is evaluated, never in the background.

    Attributes:
        book (Book): Borrowed book.
        member (Member): Borrowing member.
        loanDate (date): Day of the loan (defaults to today).
        dueDate (date): loanDate + LOAN_DAYS, pushed forward by extend().
        returnDate (Optional[date]): Set by markReturned().
        status (LoanStatus): Current lifecycle state.
    """
    LOAN_DAYS: ClassVar[int] = 14
    EXTENSION_DAYS: ClassVar[int] = 7
    LATE_FEE_PER_DAY: ClassVar[float] = 0.50

    book: Book
    member: Member
    loanDate: Optional[date] = None
    dueDate: date = field(init=False)
    returnDate: Optional[date] = field(init=False, default=None)
    status: LoanStatus = field(init=False, default=LoanStatus.ACTIVE)

    def __post_init__(self) -> None:
        if self.book is None:
            raise ValidationError("book cannot be None")
        if self.member is None:
            raise ValidationError("member cannot be None")
        if self.loanDate is None:
            self.loanDate = date.today()
        elif not isinstance(self.loanDate, date):
            raise ValidationError("loanDate must be a datetime.date")
        self.dueDate = self.loanDate + timedelta(days=self.LOAN_DAYS)

    def markReturned(self, return_date: Optional[date] = None) -> None:
        """
        Closes the loan. Calling it twice overwrites the return date, so
        callers are expected to call it once (LibraryService.returnBook does).

        Raises:
            ValidationError: If return_date is before the loan date.
        """
        return_date = return_date or date.today()
        if return_date < self.loanDate:
            raise ValidationError("return_date cannot be before loanDate")
        self.returnDate = return_date
        self.status = LoanStatus.RETURNED

    def isReturned(self) -> bool:
        return self.status is LoanStatus.RETURNED

    def _reference_date(self, today: Optional[date]) -> date:
        if self.returnDate is not None:
            return self.returnDate
        return today or date.today()

    def isOverdue(self, today: Optional[date] = None) -> bool:
        """
        Checks the reference date (return date if set, else today) against
        the due date.

        An ACTIVE loan found overdue is switched to OVERDUE. A RETURNED loan
        keeps its status and is reported overdue only if it came back after
        its due date.
        """
        overdue = self._reference_date(today) > self.dueDate
        if overdue and self.status is LoanStatus.ACTIVE:
            self.status = LoanStatus.OVERDUE
        return overdue

    def computeOverdueDays(self, today: Optional[date] = None) -> int:
        if not self.isOverdue(today):
            return 0
        return (self._reference_date(today) - self.dueDate).days

    def computeLateFee(self, today: Optional[date] = None) -> float:
        return round(self.computeOverdueDays(today) * self.LATE_FEE_PER_DAY, 2)

    def extend(self, today: Optional[date] = None) -> bool:
        """
        Pushes the due date EXTENSION_DAYS forward.

        Returns:
            bool: False (and no change) unless the loan is ACTIVE and not overdue.
        """
        if self.status is not LoanStatus.ACTIVE or self.isOverdue(today):
            return False
        self.dueDate += timedelta(days=self.EXTENSION_DAYS)
        return True

    def __str__(self) -> str:
        return (
            f"{self.book.title} -> {self.member.fullName} | loaned {self.loanDate} "
            f"| due {self.dueDate} | {self.status.value}"
        )
