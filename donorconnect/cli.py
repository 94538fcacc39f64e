"""
``donorconnect`` command line front end.

Every subcommand maps to one screen of the web client.  Results are
printed as plain text; errors as ``❌ <message>`` with a non-zero exit
status.
"""
import argparse
import getpass
import json
import sys
import threading
from typing import Any, List, Optional

from . import __version__
from .app import DonorConnect
from .auth import Role
from .exceptions import DonorConnectError, SessionExpired, ValidationError
from .log import configure_logging
from .models import (
    AMBULANCE_STATUSES,
    BED_TYPES,
    BLOOD_TYPES,
    EMERGENCY_ASSIGNED,
    URGENCY_LEVELS,
    Emergency,
    parse_coordinates,
)
from .permissions import blood_request_actions, normalize_id
from .realtime import events
from .services.admin import maps_url
from .services.funds import FILTERS
from .services.hospitals import bed_stats
from .settings import get_settings

ROLE_LABELS = [r.label for r in Role]
PAST_TENSE = {
    'accept': 'accepted',
    'complete': 'completed',
    'delete': 'deleted',
    'approve': 'approved',
    'reject': 'rejected',
}


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _ask_password(args) -> str:
    return args.password or getpass.getpass('Password: ')


# -- account ----------------------------------------------------------------------


def cmd_login(app: DonorConnect, args) -> int:
    role = Role.from_label(args.role)
    identity = app.login(role, args.email, _ask_password(args))
    print(f'✅ Logged in as {identity.name} ({role.label})')
    return 0


def cmd_logout(app: DonorConnect, args) -> int:
    role = Role.from_label(args.role) if args.role else None
    app.logout(role)
    print('✅ Logged out')
    return 0


def cmd_whoami(app: DonorConnect, args) -> int:
    identity = app.session.active()
    if identity is None:
        print('Not logged in')
        return 1
    print(f'{identity.name} ({identity.role.label}) id={identity.id}')
    return 0


# -- hospitals --------------------------------------------------------------------


def cmd_hospitals(app: DonorConnect, args) -> int:
    hospitals = app.hospitals.search_beds(city=args.city, bed_type=args.bed_type)
    stats = bed_stats(hospitals)
    print(f"{stats['totalHospitals']} hospitals, {stats['hospitalsWithBeds']} with beds, "
          f"{stats['totalAvailableBeds']} beds available")
    for hospital in hospitals:
        beds = ', '.join(f'{k}: {v.available}/{v.total}' for k, v in hospital.bed_availability.items())
        print(f'  {hospital.name} ({hospital.city}) {beds}')
    return 0


# -- blood donation ---------------------------------------------------------------


def _find_blood_request(app: DonorConnect, request_id: str):
    for request in app.blood.requests() + app.blood.my_requests():
        if request.id == request_id:
            return request
    raise ValidationError(f'Blood request {request_id} not found')


def cmd_blood_list(app: DonorConnect, args) -> int:
    requests = app.blood.my_requests() if args.mine else app.blood.requests(
        status=args.status, blood_type=args.blood_type, city=args.city)
    user = app.session.identity(Role.USER)
    for request in requests:
        actions = ', '.join(sorted(blood_request_actions(user, request))) if user else ''
        print(f'  {request.id} {request.blood_type} x{request.units} [{request.urgency}] '
              f'{request.status} {request.city} - {request.recipient_name}'
              + (f'  ({actions})' if actions else ''))
    stats = app.blood.stats(requests, [])
    print(f"{stats['totalRequests']} requests, {stats['activeRequests']} active, "
          f"{stats['completedRequests']} completed")
    return 0


def cmd_blood_create(app: DonorConnect, args) -> int:
    app.blood.create_request(
        blood_type=args.blood_type,
        city=args.city,
        units=args.units,
        urgency=args.urgency,
        address=args.address,
        hospital=args.hospital,
        notes=args.notes,
    )
    print('✅ Blood request created successfully!')
    return 0


def cmd_blood_action(app: DonorConnect, args) -> int:
    request = _find_blood_request(app, args.request_id)
    getattr(app.blood, args.action)(request)
    print(f'✅ Blood request {PAST_TENSE[args.action]}')
    return 0


# -- emergencies ------------------------------------------------------------------


def _print_status(status: str, emergency: dict) -> None:
    print(f'  status: {status}')
    if status == EMERGENCY_ASSIGNED and emergency.get('assignedAmbulance'):
        view = Emergency.from_dict(emergency)
        ambulance = view.assigned_ambulance
        print('🎉 EMERGENCY ACCEPTED!')
        print(f'  🚑 {ambulance.name}  Driver: {ambulance.driver_name}  Phone: {ambulance.phone}')
        print(f'  Estimated arrival time: {round(view.estimated_time or 10)} minutes')


def _watch(app: DonorConnect, emergency_id: str) -> int:
    poller = app.emergencies.poller(
        emergency_id,
        on_status=_print_status,
        on_warning=lambda checks: print('⏳ Still searching for an available ambulance...'),
    )
    try:
        result = poller.run()
    except KeyboardInterrupt:
        poller.cancel()
        return 130
    if result is None or result.status != EMERGENCY_ASSIGNED:
        print('⏰ No ambulance accepted the request yet. Please call emergency services directly.')
        return 1
    return 0


def cmd_emergency_create(app: DonorConnect, args) -> int:
    coordinates = parse_coordinates(args.coordinates)
    emergency = app.emergencies.create(args.location, coordinates)
    emergency_id = normalize_id(emergency)
    print(f'🚨 Emergency request created: {emergency_id}')
    if args.watch:
        return _watch(app, emergency_id)
    return 0


def cmd_emergency_status(app: DonorConnect, args) -> int:
    emergency = app.emergencies.status(args.emergency_id)
    _print_status(emergency.get('status', 'unknown'), emergency)
    return 0


def cmd_emergency_watch(app: DonorConnect, args) -> int:
    return _watch(app, args.emergency_id)


# -- ambulance --------------------------------------------------------------------


def cmd_ambulance_dashboard(app: DonorConnect, args) -> int:
    _print_json(app.ambulances.dashboard())
    return 0


def cmd_ambulance_location(app: DonorConnect, args) -> int:
    coordinates = parse_coordinates(args.coordinates)
    app.ambulances.update_location(coordinates)
    print(f'📍 Location updated successfully: {coordinates}')
    return 0


def cmd_ambulance_status(app: DonorConnect, args) -> int:
    app.ambulances.update_status(args.status)
    print(f'🔄 Status updated to {args.status}')
    return 0


def cmd_ambulance_emergencies(app: DonorConnect, args) -> int:
    for emergency in app.ambulances.nearby_emergencies():
        distance = f'{emergency.distance:.1f} km' if emergency.distance is not None else '?'
        print(f'  {emergency.id} {emergency.status} {emergency.location} ({distance})')
    return 0


def cmd_ambulance_accept(app: DonorConnect, args) -> int:
    app.ambulances.accept_emergency(args.emergency_id)
    print(f'✅ Accepted emergency {args.emergency_id}')
    return 0


def cmd_ambulance_complete(app: DonorConnect, args) -> int:
    app.ambulances.complete_emergency(args.emergency_id)
    print(f'✅ Emergency {args.emergency_id} completed')
    return 0


# -- admin ------------------------------------------------------------------------


def cmd_admin_pending(app: DonorConnect, args) -> int:
    print('Pending hospitals:')
    for hospital in app.admin.pending_hospitals():
        print(f"  {normalize_id(hospital)} {hospital.get('name')} ({hospital.get('city', '')})")
    print('Pending ambulances:')
    for ambulance in app.admin.pending_ambulances():
        print(f"  {normalize_id(ambulance)} {ambulance.get('name')} driver={ambulance.get('driverName', '')}")
    return 0


def cmd_admin_review(app: DonorConnect, args) -> int:
    getattr(app.admin, f'{args.action}_{args.kind}')(args.target_id)
    print(f'✅ {args.kind.capitalize()} {PAST_TENSE[args.action]}')
    return 0


def cmd_admin_emergencies(app: DonorConnect, args) -> int:
    for emergency in app.admin.emergencies():
        print(f"  {normalize_id(emergency)} {emergency.get('status')} {emergency.get('location', '')}")
    return 0


def cmd_admin_assign(app: DonorConnect, args) -> int:
    app.admin.assign_emergency(args.emergency_id)
    emergency = next((e for e in app.admin.emergencies() if normalize_id(e) == args.emergency_id), {})
    print('🚑 Emergency assigned successfully!')
    print(f"  {maps_url(emergency.get('coordinates'), emergency.get('location'))}")
    return 0


# -- funds ------------------------------------------------------------------------


def cmd_funds_list(app: DonorConnect, args) -> int:
    for fund in app.funds.list(args.filter):
        print(f'  {fund.id} {fund.patient_name}: {fund.purpose} '
              f'{fund.amount_collected:.0f}/{fund.amount_required:.0f} ({fund.progress:.0f}%) {fund.status}')
    return 0


def cmd_funds_donate(app: DonorConnect, args) -> int:
    app.funds.donate(args.fund_id, args.amount)
    print('🎉 Donation successful! Thank you for your contribution.')
    return 0


# -- notifications ----------------------------------------------------------------


def cmd_notifications_list(app: DonorConnect, args) -> int:
    notifications = app.notifications.list(limit=args.limit)
    print(f'{app.notifications.unread_count()} unread')
    for notification in notifications:
        mark = ' ' if notification.read else '*'
        print(f' {mark} {notification.id} {notification.title or notification.type}: {notification.message}')
    return 0


def cmd_notifications_read(app: DonorConnect, args) -> int:
    if args.all:
        app.notifications.mark_all_read()
    elif args.notification_id:
        app.notifications.mark_read(args.notification_id)
    else:
        raise ValidationError('Give a notification id or --all')
    print('✅ Marked as read')
    return 0


def cmd_notifications_clear(app: DonorConnect, args) -> int:
    if args.notification_id:
        app.notifications.delete(args.notification_id)
    else:
        app.notifications.clear()
    print('✅ Notifications cleared')
    return 0


# -- real-time --------------------------------------------------------------------


def _printer(event: str):
    def callback(*data):
        print(f'[{event}] ' + ' '.join(json.dumps(d, ensure_ascii=False, default=str) for d in data))
    return callback


def cmd_listen(app: DonorConnect, args, stop: Optional[threading.Event] = None) -> int:
    """Print real-time events until interrupted or logged out elsewhere."""
    stop = stop or threading.Event()
    for event in events.EMERGENCY_EVENTS + events.BLOOD_EVENTS:
        app.channel.on(event, _printer(event))

    def on_navigation(action: str, route: str) -> None:
        if action == 'reload':
            identity = app.reload()
            print(f"🔄 Session changed: {identity.name if identity else 'logged out'}")
        elif action == 'redirect':
            print(f'🔒 Logged out elsewhere; run `donorconnect login` to continue ({route})')
            stop.set()

    app.navigator.subscribe(on_navigation)
    app.connect_channel()
    app.watcher.start()
    try:
        while not stop.wait(0.5):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        app.navigator.unsubscribe(on_navigation)
        app.close()
    return 0


# -- parser -----------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='donorconnect', description='Donor Connect command line client')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('-v', '--verbose', action='count', default=0, help='more logging (-vv for debug)')
    sub = parser.add_subparsers(dest='command', metavar='command')
    sub.required = True

    p = sub.add_parser('login', help='log in as one identity')
    p.add_argument('role', choices=ROLE_LABELS)
    p.add_argument('--email', required=True)
    p.add_argument('--password', help='prompted for when omitted')
    p.set_defaults(func=cmd_login)

    p = sub.add_parser('logout', help='log out one identity, or all of them')
    p.add_argument('role', nargs='?', choices=ROLE_LABELS)
    p.set_defaults(func=cmd_logout)

    sub.add_parser('whoami', help='show the active identity').set_defaults(func=cmd_whoami)

    p = sub.add_parser('hospitals', help='search hospital bed availability')
    p.add_argument('--city', help='city, state, area or hospital name')
    p.add_argument('--bed-type', choices=BED_TYPES)
    p.set_defaults(func=cmd_hospitals)

    blood = sub.add_parser('blood', help='blood donation requests').add_subparsers(dest='action', metavar='action')
    blood.required = True
    p = blood.add_parser('list')
    p.add_argument('--mine', action='store_true')
    p.add_argument('--status')
    p.add_argument('--blood-type', choices=BLOOD_TYPES)
    p.add_argument('--city')
    p.set_defaults(func=cmd_blood_list)
    p = blood.add_parser('create')
    p.add_argument('--blood-type', required=True, choices=BLOOD_TYPES)
    p.add_argument('--city', required=True)
    p.add_argument('--units', type=int, default=1)
    p.add_argument('--urgency', choices=URGENCY_LEVELS, default='medium')
    p.add_argument('--address', default='')
    p.add_argument('--hospital', default='')
    p.add_argument('--notes', default='')
    p.set_defaults(func=cmd_blood_create)
    for action in ('accept', 'complete', 'delete'):
        p = blood.add_parser(action)
        p.add_argument('request_id')
        p.set_defaults(func=cmd_blood_action)

    emergency = sub.add_parser('emergency', help='request an ambulance').add_subparsers(
        dest='action', metavar='action')
    emergency.required = True
    p = emergency.add_parser('create')
    p.add_argument('coordinates', help='"latitude longitude" or "lat,lng"')
    p.add_argument('--location')
    p.add_argument('--watch', action='store_true', help='wait for an ambulance to accept')
    p.set_defaults(func=cmd_emergency_create)
    p = emergency.add_parser('status')
    p.add_argument('emergency_id')
    p.set_defaults(func=cmd_emergency_status)
    p = emergency.add_parser('watch')
    p.add_argument('emergency_id')
    p.set_defaults(func=cmd_emergency_watch)

    ambulance = sub.add_parser('ambulance', help='ambulance crew actions').add_subparsers(
        dest='action', metavar='action')
    ambulance.required = True
    ambulance.add_parser('dashboard').set_defaults(func=cmd_ambulance_dashboard)
    p = ambulance.add_parser('location')
    p.add_argument('coordinates')
    p.set_defaults(func=cmd_ambulance_location)
    p = ambulance.add_parser('status')
    p.add_argument('status', choices=AMBULANCE_STATUSES)
    p.set_defaults(func=cmd_ambulance_status)
    ambulance.add_parser('emergencies').set_defaults(func=cmd_ambulance_emergencies)
    p = ambulance.add_parser('accept')
    p.add_argument('emergency_id')
    p.set_defaults(func=cmd_ambulance_accept)
    p = ambulance.add_parser('complete')
    p.add_argument('emergency_id')
    p.set_defaults(func=cmd_ambulance_complete)
    ambulance.add_parser('listen').set_defaults(func=cmd_listen)

    admin = sub.add_parser('admin', help='approvals and oversight').add_subparsers(dest='action', metavar='action')
    admin.required = True
    admin.add_parser('pending').set_defaults(func=cmd_admin_pending)
    for action in ('approve', 'reject'):
        p = admin.add_parser(action)
        p.add_argument('kind', choices=['hospital', 'ambulance'])
        p.add_argument('target_id')
        p.set_defaults(func=cmd_admin_review)
    admin.add_parser('emergencies').set_defaults(func=cmd_admin_emergencies)
    p = admin.add_parser('assign')
    p.add_argument('emergency_id')
    p.set_defaults(func=cmd_admin_assign)

    funds = sub.add_parser('funds', help='medical fund requests').add_subparsers(dest='action', metavar='action')
    funds.required = True
    p = funds.add_parser('list')
    p.add_argument('--filter', choices=FILTERS, default='all')
    p.set_defaults(func=cmd_funds_list)
    p = funds.add_parser('donate')
    p.add_argument('fund_id')
    p.add_argument('amount')
    p.set_defaults(func=cmd_funds_donate)

    notes = sub.add_parser('notifications', help='your notifications').add_subparsers(
        dest='action', metavar='action')
    notes.required = True
    p = notes.add_parser('list')
    p.add_argument('--limit', type=int)
    p.set_defaults(func=cmd_notifications_list)
    p = notes.add_parser('read')
    p.add_argument('notification_id', nargs='?')
    p.add_argument('--all', action='store_true')
    p.set_defaults(func=cmd_notifications_read)
    p = notes.add_parser('clear')
    p.add_argument('notification_id', nargs='?')
    p.set_defaults(func=cmd_notifications_clear)

    sub.add_parser('listen', help='print real-time events').set_defaults(func=cmd_listen)
    return parser


def main(argv: Optional[List[str]] = None, app: Optional[DonorConnect] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = app.settings if app is not None else get_settings()
        level = {0: settings.log_level, 1: 'INFO'}.get(args.verbose, 'DEBUG')
        configure_logging(level)
        app = app or DonorConnect(settings)
        return args.func(app, args)
    except SessionExpired as exc:
        print(f'❌ {exc}')
        role = exc.role.label if exc.role is not None else 'user'
        print(f'   run: donorconnect login {role} --email <email>')
        return 1
    except DonorConnectError as exc:
        print(f'❌ {exc}')
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == '__main__':
    sys.exit(main())
