from flask import Blueprint, current_app, render_template, request, redirect, url_for, session, flash, g
from models import db, User, ROLES, current_time
from functools import wraps
import logging

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')
logger = logging.getLogger(__name__)


# Helper function - load current user
def load_current_user():
    """Load user into g.current_user for easy access"""
    user = None
    if 'user_id' in session:
        user = db.session.get(User, session['user_id'])
        if user and user.is_disabled:
            session.clear()
            user = None
    g.current_user = user


def _safe_next(target: str | None) -> str | None:
    """Only follow redirects that stay on this site."""
    if target and target.startswith('/') and not target.startswith('//'):
        return target
    return None


# Decorators for authentication
def login_required(f):
    """Require any logged-in user"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not g.current_user:
            flash('Please log in to access this page.', 'error')
            return redirect(url_for('auth.login', next=request.path))
        return f(*args, **kwargs)
    return decorated_function


def require_owner(f):
    """Require club owner role"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not g.current_user:
            flash('Please log in to access this page.', 'error')
            return redirect(url_for('auth.login', next=request.path))

        if g.current_user.role != 'owner':
            flash('Please use a club owner account to access this page.', 'error')
            return redirect(url_for('dashboard'))
        return f(*args, **kwargs)
    return decorated_function


def require_player(f):
    """Require player role"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not g.current_user:
            flash('Please log in to access this page.', 'error')
            return redirect(url_for('auth.login', next=request.path))

        if g.current_user.role != 'player':
            flash('Please use a player account to access this page.', 'error')
            return redirect(url_for('dashboard'))
        return f(*args, **kwargs)
    return decorated_function


def check_registration_password(role: str, password: str) -> bool:
    """Each role is gated by a password handed out by the club."""
    expected = current_app.config['REGISTRATION_PASSWORDS'].get(role)
    return bool(expected) and password == expected


def check_user_uniqueness(email):
    """
    Check if email already exists in database.
    Returns list of errors. Requires Flask app context.
    """
    errors = []
    if User.query.filter_by(email=email).first():
        errors.append("Email already registered")
    return errors


@auth_bp.route('/register', methods=['GET', 'POST'])
def register():
    """Member registration for players and club owners"""
    next_url = _safe_next(request.values.get('next'))

    if request.method == 'POST':
        first_name = request.form.get('first_name', '').strip()
        last_name = request.form.get('last_name', '').strip()
        email = request.form.get('email', '').strip().lower()
        password = request.form.get('password', '')
        confirm_password = request.form.get('confirm_password', '')
        age = request.form.get('age', '').strip()
        role = request.form.get('role', 'player')
        registration_password = request.form.get('registration_password', '')

        # Validate format (no DB queries)
        errors = User.validate_format(first_name, last_name, email, password, confirm_password, role, age)

        if role in ROLES and not check_registration_password(role, registration_password):
            label = 'Club Owner' if role == 'owner' else 'Player'
            errors.append(f"Invalid registration password for {label} account")

        # Check uniqueness (requires DB queries)
        if not errors:
            errors.extend(check_user_uniqueness(email))

        if errors:
            for error in errors:
                flash(error, 'error')
            return render_template('auth/register.html', form=request.form, next_url=next_url)

        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            role=role,
            age=int(age) if age else None,
        )
        user.set_password(password)

        try:
            db.session.add(user)
            db.session.commit()
        except Exception:
            db.session.rollback()
            logger.exception('Registration failed for %s', email)
            flash('Registration failed. Please try again.', 'error')
            return render_template('auth/register.html', form=request.form, next_url=next_url)

        logger.info('Registered %s as %s', email, role)
        flash('Registration successful! You can now log in.', 'success')
        return redirect(url_for('auth.login', next=next_url) if next_url else url_for('auth.login'))

    return render_template('auth/register.html', form={}, next_url=next_url)


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    """Unified login for owners and players"""
    next_url = _safe_next(request.values.get('next'))

    if request.method == 'POST':
        email = request.form.get('email', '').strip().lower()
        password = request.form.get('password', '')

        user = User.query.filter_by(email=email).first()

        if user and user.check_password(password):
            if user.is_disabled:
                flash('This account has been disabled. Contact the club owner.', 'error')
                return render_template('auth/login.html', next_url=next_url), 403

            session.clear()
            session['user_id'] = user.id
            session['role'] = user.role
            session['logged_in_at'] = current_time().isoformat()
            session.modified = True

            flash(f'Login successful! Welcome, {user.first_name}.', 'success')
            return redirect(next_url or url_for('dashboard'))

        flash('Invalid email or password.', 'error')

    return render_template('auth/login.html', next_url=next_url)


@auth_bp.route('/logout')
def logout():
    """Logout user"""
    session.clear()
    flash('You have been logged out.', 'info')
    return redirect(url_for('index'))
