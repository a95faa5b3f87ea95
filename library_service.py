from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional

from library_exceptions import (
    BookNotFoundError,
    CheckoutRuleViolationError,
    MemberNotFoundError,
    ValidationError,
)
from library_models import Book, Loan, LoanStatus, Member


# Logging configuration
logger = logging.getLogger("library")
logger.setLevel(logging.INFO)

if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


@dataclass(frozen=True)
class LibraryStatistics:
    """
    Snapshot of the library counters.

    Attributes:
        bookCount (int): Catalog size.
        memberCount (int): Member registry size.
        activeLoanCount (int): Loans whose stored status is ACTIVE.
    """
    bookCount: int
    memberCount: int
    activeLoanCount: int

    def __str__(self) -> str:
        return (
            f"books={self.bookCount} members={self.memberCount} "
            f"active loans={self.activeLoanCount}"
        )


# Library Core
class LibraryService:
    """
    Coordinates the catalog, the member registry and the loan history.

    Rules enforced:
        (1) Members can hold at most Member.MAX_LOANS books at a time
        (2) Suspended members and members with unsettled late returns cannot borrow
        (3) Books are due Loan.LOAN_DAYS days after the loan
        (4) Late returns accrue Member.LATE_FEE_PER_DAY per late day

    Every public method holds one re-entrant lock for its whole duration.
    """

    def __init__(self) -> None:
        """
        Initializes an empty library with no books, members or loans.
        """
        self.books: Dict[str, Book] = {}
        self.members: Dict[str, Member] = {}
        self.loans: List[Loan] = []
        self._lock = threading.RLock()

    # Registries

    def addBook(self, book: Book) -> None:
        """
        Adds a book to the catalog. A book with the same ISBN is replaced.

        Raises:
            ValidationError: If book is None.
        """
        if book is None:
            raise ValidationError("book cannot be None")

        with self._lock:
            logger.info("addBook called | isbn=%s title=%s", book.isbn, book.title)
            self.books[book.isbn] = book

    def registerMember(self, member: Member) -> None:
        """
        Registers a member. A member with the same memberId is replaced.

        Raises:
            ValidationError: If member is None.
        """
        if member is None:
            raise ValidationError("member cannot be None")

        with self._lock:
            logger.info("registerMember called | memberId=%s", member.memberId)
            self.members[member.memberId] = member

    def findBookByIsbn(self, isbn: str) -> Optional[Book]:
        with self._lock:
            return self.books.get(isbn)

    def findMember(self, memberId: str) -> Optional[Member]:
        with self._lock:
            return self.members.get(memberId)

    # Loans

    def borrowBook(
        self,
        isbn: str,
        memberId: str,
        loan_date: Optional[date] = None
    ) -> Loan:
        """
        Lends one copy of a book to a member.

        All checks run before anything is changed, so a failed call leaves
        the book, the member and the loan history untouched.

        Raises:
            BookNotFoundError
            MemberNotFoundError
            CheckoutRuleViolationError: Member cannot borrow or no copy is available.
        """
        with self._lock:
            logger.info("borrowBook called | memberId=%s isbn=%s", memberId, isbn)

            book = self._get_book(isbn)
            member = self._get_member(memberId)

            if not member.canBorrow():
                logger.warning("Borrow refused, member not eligible | memberId=%s", memberId)
                raise CheckoutRuleViolationError(
                    f"Member {memberId} cannot borrow (active={member.active}, "
                    f"loans={member.currentLoans}, late={member.hasLateReturns})."
                )

            if not book.isAvailable():
                logger.warning("Borrow refused, no copy available | isbn=%s", isbn)
                raise CheckoutRuleViolationError(f"Book {isbn} is not available.")

            loan = Loan(book, member, loanDate=loan_date)
            book.borrowCopy()
            member.addLoan()
            self.loans.append(loan)

            logger.info(
                "Borrow successful | memberId=%s isbn=%s due=%s", memberId, isbn, loan.dueDate
            )
            return loan

    def returnBook(self, loan: Loan, return_date: Optional[date] = None) -> None:
        """
        Closes a loan and settles the book and member counters.

        Lateness is assessed here, once, against the return date: an overdue
        return marks the member late and adds the overdue days to their total.

        Raises:
            ValidationError: If loan is None.
            CheckoutRuleViolationError: If the loan was already returned.
        """
        if loan is None:
            raise ValidationError("loan cannot be None")

        with self._lock:
            logger.info(
                "returnBook called | memberId=%s isbn=%s", loan.member.memberId, loan.book.isbn
            )

            if loan.isReturned():
                raise CheckoutRuleViolationError(
                    f"Loan of {loan.book.isbn} by {loan.member.memberId} is already returned."
                )

            loan.markReturned(return_date)
            loan.book.returnCopy()
            loan.member.removeLoan()

            if loan.isOverdue():
                overdue_days = loan.computeOverdueDays()
                loan.member.markLate()
                loan.member.addLateDays(overdue_days)
                logger.warning(
                    "Late return | memberId=%s isbn=%s overdue_days=%d",
                    loan.member.memberId,
                    loan.book.isbn,
                    overdue_days,
                )

            logger.info("Return successful | memberId=%s isbn=%s", loan.member.memberId, loan.book.isbn)

    def extendLoan(self, loan: Loan, today: Optional[date] = None) -> bool:
        """
        Extends an active, not overdue loan.

        Raises:
            ValidationError: If loan is None.
        """
        if loan is None:
            raise ValidationError("loan cannot be None")

        with self._lock:
            extended = loan.extend(today)
            logger.info(
                "extendLoan called | isbn=%s extended=%s due=%s",
                loan.book.isbn,
                extended,
                loan.dueDate,
            )
            return extended

    def settleLateFees(self, memberId: str) -> float:
        """
        Collects the member's late fee and clears their late status.

        Returns:
            float: The amount that was owed.

        Raises:
            MemberNotFoundError
        """
        with self._lock:
            member = self._get_member(memberId)
            fee = member.computeLateFee()
            member.clearLateStatus()
            logger.info("Late fees settled | memberId=%s amount=%.2f", memberId, fee)
            return fee

    # Queries

    def searchByTitle(self, query: Optional[str]) -> List[Book]:
        """
        Case-insensitive substring search on titles. An empty query matches nothing.
        """
        if not query or not query.strip():
            return []
        term = query.lower()
        with self._lock:
            return [b for b in self.books.values() if term in b.title.lower()]

    def searchByAuthor(self, query: Optional[str]) -> List[Book]:
        """
        Case-insensitive substring search on authors. An empty query matches nothing.
        """
        if not query or not query.strip():
            return []
        term = query.lower()
        with self._lock:
            return [b for b in self.books.values() if term in b.author.lower()]

    def listLoansForMember(self, memberId: str) -> List[Loan]:
        with self._lock:
            return [l for l in self.loans if l.member.memberId == memberId]

    def listActiveLoans(self) -> List[Loan]:
        """
        Returns loans whose stored status is ACTIVE.

        Overdue status is not evaluated here; call listOverdueLoans() first
        when loans past their due date must be excluded.
        """
        with self._lock:
            return [l for l in self.loans if l.status is LoanStatus.ACTIVE]

    def listOverdueLoans(self, today: Optional[date] = None) -> List[Loan]:
        """
        Evaluates every open loan against today, switching overdue ACTIVE
        loans to OVERDUE, and returns the overdue ones.
        """
        with self._lock:
            return [l for l in self.loans if not l.isReturned() and l.isOverdue(today)]

    def getStatistics(self) -> LibraryStatistics:
        """
        Counts are computed on every call. The active loan count uses stored
        statuses, like listActiveLoans().
        """
        with self._lock:
            return LibraryStatistics(
                bookCount=len(self.books),
                memberCount=len(self.members),
                activeLoanCount=sum(1 for l in self.loans if l.status is LoanStatus.ACTIVE),
            )

    # Internal Helpers
    def _get_book(self, isbn: str) -> Book:
        """
        Retrieves a book by ISBN or raises BookNotFoundError.
        """
        if isbn not in self.books:
            raise BookNotFoundError(f"Book not found: isbn={isbn}")
        return self.books[isbn]

    def _get_member(self, memberId: str) -> Member:
        """
        Retrieves a member by ID or raises MemberNotFoundError.
        """
        if memberId not in self.members:
            raise MemberNotFoundError(f"Member not found: memberId={memberId}")
        return self.members[memberId]
