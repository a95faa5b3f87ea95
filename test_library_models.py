import pytest
from datetime import date, timedelta

from library_models import Book, Loan, LoanStatus, Member
from library_exceptions import CheckoutRuleViolationError, StateError, ValidationError


@pytest.fixture
def book():
    return Book("978-0132350884", "Clean Code", "Robert C. Martin", 2008)


@pytest.fixture
def member():
    return Member("Dupont", "Jean", "jean.dupont@example.com")


# -----------------------------
# Book
# -----------------------------
def test_book_defaults_to_one_available_copy(book):
    assert book.totalCopies == 1
    assert book.availableCopies == 1
    assert book.isAvailable() is True


@pytest.mark.parametrize(
    "isbn, title, author, year",
    [
        ("", "Clean Code", "Robert C. Martin", 2008),     # empty isbn
        (None, "Clean Code", "Robert C. Martin", 2008),   # missing isbn
        ("111", "   ", "Robert C. Martin", 2008),         # blank title
        ("111", "Clean Code", "", 2008),                  # empty author
        ("111", "Clean Code", "Robert C. Martin", 1899),  # too old
        ("111", "Clean Code", "Robert C. Martin", date.today().year + 1),  # future
    ],
)
def test_book_invalid_fields_raise(isbn, title, author, year):
    with pytest.raises(ValidationError):
        Book(isbn, title, author, year)


def test_book_year_bounds_are_inclusive():
    Book("111", "Old", "Someone", 1900)
    Book("222", "New", "Someone", date.today().year)


def test_book_invalid_copy_counts_raise():
    with pytest.raises(ValidationError):
        Book("111", "Clean Code", "Robert C. Martin", 2008, totalCopies=0)
    with pytest.raises(ValidationError):
        Book("111", "Clean Code", "Robert C. Martin", 2008, totalCopies=2, availableCopies=3)


def test_borrow_copy_until_empty(book):
    assert book.borrowCopy() is True
    assert book.availableCopies == 0
    assert book.isAvailable() is False

    assert book.borrowCopy() is False
    assert book.availableCopies == 0


def test_return_copy_refuses_when_fully_stocked(book):
    assert book.returnCopy() is False
    assert book.availableCopies == 1

    book.borrowCopy()
    assert book.returnCopy() is True
    assert book.availableCopies == 1


def test_add_copies(book):
    book.borrowCopy()
    book.addCopies(3)
    assert book.totalCopies == 4
    assert book.availableCopies == 3

    book.addCopies(0)
    assert book.totalCopies == 4


def test_add_negative_copies_raises(book):
    with pytest.raises(ValidationError):
        book.addCopies(-1)
    assert book.totalCopies == 1


def test_available_never_exceeds_total(book):
    book.addCopies(2)
    for op in ["borrow", "borrow", "return", "return", "return", "return", "borrow"]:
        if op == "borrow":
            book.borrowCopy()
        else:
            book.returnCopy()
        assert 0 <= book.availableCopies <= book.totalCopies


# -----------------------------
# Member
# -----------------------------
def test_member_defaults(member):
    assert member.memberId.startswith("MBR-")
    assert member.registrationDate == date.today()
    assert member.active is True
    assert member.currentLoans == 0
    assert member.hasLateReturns is False
    assert member.lateDays == 0
    assert member.canBorrow() is True
    assert member.fullName == "Jean Dupont"


def test_member_ids_are_unique():
    ids = {Member("Doe", "Jane", "jane@example.com").memberId for _ in range(200)}
    assert len(ids) == 200


@pytest.mark.parametrize(
    "last, first, email",
    [
        ("", "Jean", "jean@example.com"),
        ("Dupont", None, "jean@example.com"),
        ("Dupont", "Jean", "not-an-email"),
        ("Dupont", "Jean", "jean@example"),
        ("Dupont", "Jean", None),
    ],
)
def test_member_invalid_fields_raise(last, first, email):
    with pytest.raises(ValidationError):
        Member(last, first, email)


def test_loan_limit_blocks_then_recovers(member):
    for _ in range(Member.MAX_LOANS):
        member.addLoan()
    assert member.currentLoans == 5
    assert member.canBorrow() is False

    with pytest.raises(CheckoutRuleViolationError):
        member.addLoan()
    assert member.currentLoans == 5

    member.removeLoan()
    assert member.currentLoans == 4
    assert member.canBorrow() is True


def test_remove_loan_floors_at_zero(member):
    member.removeLoan()
    assert member.currentLoans == 0


def test_deactivated_member_cannot_borrow(member):
    member.deactivate()
    assert member.canBorrow() is False
    with pytest.raises(StateError):
        member.addLoan()

    member.activate()
    assert member.canBorrow() is True


def test_late_member_cannot_borrow_until_settled(member):
    member.markLate()
    member.addLateDays(4)
    assert member.canBorrow() is False
    assert member.computeLateFee() == 2.00

    member.clearLateStatus()
    assert member.canBorrow() is True
    assert member.lateDays == 0
    assert member.computeLateFee() == 0.0


def test_late_days_accumulate(member):
    member.addLateDays(3)
    member.addLateDays(0)
    member.addLateDays(2)
    assert member.lateDays == 5
    assert member.computeLateFee() == 2.50


def test_negative_late_days_raise(member):
    with pytest.raises(ValidationError):
        member.addLateDays(-2)


# -----------------------------
# Loan
# -----------------------------
def test_loan_requires_book_and_member(book, member):
    with pytest.raises(ValidationError):
        Loan(None, member)
    with pytest.raises(ValidationError):
        Loan(book, None)


def test_new_loan_is_due_in_14_days(book, member):
    loan = Loan(book, member)
    assert loan.loanDate == date.today()
    assert loan.dueDate == loan.loanDate + timedelta(days=14)
    assert loan.status is LoanStatus.ACTIVE
    assert loan.returnDate is None
    assert loan.isOverdue() is False


def test_loan_not_overdue_on_due_date(book, member):
    loan = Loan(book, member, loanDate=date(2025, 1, 1))
    assert loan.isOverdue(today=date(2025, 1, 15)) is False
    assert loan.status is LoanStatus.ACTIVE


def test_overdue_check_switches_status(book, member):
    loan = Loan(book, member, loanDate=date(2025, 1, 1))
    assert loan.status is LoanStatus.ACTIVE

    assert loan.isOverdue(today=date(2025, 1, 16)) is True
    assert loan.status is LoanStatus.OVERDUE


def test_overdue_days_and_fee_while_open(book, member):
    loan = Loan(book, member, loanDate=date(2025, 1, 1))
    assert loan.computeOverdueDays(today=date(2025, 1, 10)) == 0
    assert loan.computeOverdueDays(today=date(2025, 1, 18)) == 3
    assert loan.computeLateFee(today=date(2025, 1, 18)) == 1.50


def test_late_return_six_days(book, member):
    loan = Loan(book, member, loanDate=date(2025, 1, 1))
    loan.markReturned(date(2025, 1, 21))

    assert loan.status is LoanStatus.RETURNED
    assert loan.isOverdue() is True
    assert loan.status is LoanStatus.RETURNED
    assert loan.computeOverdueDays() == 6
    assert loan.computeLateFee() == 3.00


def test_on_time_return_is_not_overdue(book, member):
    loan = Loan(book, member, loanDate=date(2025, 1, 1))
    loan.markReturned(date(2025, 1, 10))
    assert loan.isOverdue(today=date(2025, 6, 1)) is False
    assert loan.computeOverdueDays(today=date(2025, 6, 1)) == 0


def test_overdue_loan_can_still_be_returned(book, member):
    loan = Loan(book, member, loanDate=date(2025, 1, 1))
    loan.isOverdue(today=date(2025, 2, 1))
    assert loan.status is LoanStatus.OVERDUE

    loan.markReturned(date(2025, 2, 1))
    assert loan.status is LoanStatus.RETURNED


def test_extend_adds_seven_days(book, member):
    loan = Loan(book, member, loanDate=date(2025, 1, 1))
    assert loan.extend(today=date(2025, 1, 10)) is True
    assert loan.dueDate == date(2025, 1, 22)


def test_extend_refused_once_overdue(book, member):
    loan = Loan(book, member, loanDate=date(2025, 1, 1))
    loan.extend(today=date(2025, 1, 10))
    due = loan.dueDate

    assert loan.extend(today=date(2025, 1, 25)) is False
    assert loan.dueDate == due
    assert loan.status is LoanStatus.OVERDUE


def test_extend_refused_after_return(book, member):
    loan = Loan(book, member, loanDate=date(2025, 1, 1))
    loan.markReturned(date(2025, 1, 5))
    assert loan.extend(today=date(2025, 1, 5)) is False
    assert loan.dueDate == date(2025, 1, 15)


def test_return_before_loan_date_raises(book, member):
    loan = Loan(book, member, loanDate=date(2025, 1, 10))
    with pytest.raises(ValidationError):
        loan.markReturned(date(2025, 1, 9))
    assert loan.status is LoanStatus.ACTIVE
    assert loan.returnDate is None
