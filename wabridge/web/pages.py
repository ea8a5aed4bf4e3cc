"""
Dashboard Page - Single HTML Page with Inline Script
=====================================================

Status + QR, reply templates, persona and conversation history.
Talks to the JSON API and listens on /ws for live events.
"""

# ══════════════════════════════════════════════════════════════════
#  SHARED CSS
# ══════════════════════════════════════════════════════════════════

SHARED_CSS = """
    @import url('https://fonts.googleapis.com/css2?family=Inter:wght@300;400;500;600;700;800&display=swap');

    :root {
        --bg-dark: #0a0a14;
        --bg-card: rgba(255,255,255,0.035);
        --border: rgba(255,255,255,0.07);
        --border-hover: rgba(37,211,102,0.4);
        --text: #e2e8f0;
        --text-muted: #64748b;
        --accent-1: #25d366;
        --accent-2: #06b6d4;
        --gradient: linear-gradient(135deg, #25d366 0%, #06b6d4 100%);
    }

    * { margin: 0; padding: 0; box-sizing: border-box; }

    body {
        font-family: 'Inter', -apple-system, BlinkMacSystemFont, sans-serif;
        background: var(--bg-dark);
        min-height: 100vh;
        color: var(--text);
        padding: 32px;
    }

    .grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(360px, 1fr)); gap: 20px; }

    .card {
        background: var(--bg-card);
        border: 1px solid var(--border);
        border-radius: 16px;
        padding: 24px;
    }
    .card:hover { border-color: var(--border-hover); }
    .card h2 { font-size: 16px; margin-bottom: 16px; }

    .btn {
        background: var(--gradient);
        color: #0a0a14;
        border: none;
        padding: 10px 20px;
        border-radius: 10px;
        font-weight: 600;
        font-size: 13px;
        cursor: pointer;
        font-family: inherit;
    }
    .btn-ghost { background: var(--bg-card); border: 1px solid var(--border); color: var(--text); }

    .badge {
        padding: 4px 10px;
        border-radius: 6px;
        font-size: 11px;
        font-weight: 600;
        text-transform: uppercase;
    }
    .badge.ready        { background: rgba(52,211,153,0.15); color: #34d399; }
    .badge.qr_pending   { background: rgba(251,191,36,0.15); color: #fbbf24; }
    .badge.disconnected { background: rgba(248,113,113,0.15); color: #f87171; }

    input[type="text"], textarea {
        background: rgba(255,255,255,0.05);
        border: 1px solid var(--border);
        padding: 10px 14px;
        border-radius: 10px;
        color: var(--text);
        font-size: 14px;
        font-family: inherit;
        width: 100%;
        margin-bottom: 10px;
    }

    ul { list-style: none; }
    li { padding: 10px 0; border-bottom: 1px solid var(--border); font-size: 14px; }
    li small { color: var(--text-muted); display: block; }
    .turn-user { color: var(--accent-2); }
    .turn-assistant { color: var(--accent-1); }
    #qr img { max-width: 260px; margin-top: 16px; background: #fff; padding: 8px; border-radius: 8px; }
"""

DASHBOARD_SCRIPT = """
const api = (path, options) => fetch('/api' + path, options).then(r => r.json());
const post = (path, body) => api(path, {
    method: 'POST',
    headers: {'Content-Type': 'application/json'},
    body: JSON.stringify(body || {}),
});
const esc = s => String(s).replace(/[&<>"]/g, c => ({'&': '&amp;', '<': '&lt;', '>': '&gt;', '"': '&quot;'}[c]));

function setStatus(state, hasQr) {
    const badge = document.getElementById('state');
    badge.textContent = state;
    badge.className = 'badge ' + state;
    if (!hasQr) document.getElementById('qr').innerHTML = '';
}

function showQr(qr) {
    setStatus('qr_pending', true);
    document.getElementById('qr').innerHTML = qr.image ? `<img src="${qr.image}">` : '<code>' + esc(qr.ref) + '</code>';
}

async function loadStatus() {
    const s = await api('/status');
    setStatus(s.connectionState, s.hasQr);
    if (s.hasQr) {
        const response = await fetch('/api/qr');
        if (response.ok) showQr(await response.json());
    }
}

async function loadTemplates() {
    const list = await api('/templates');
    document.getElementById('templates').innerHTML = list.map((t, i) =>
        `<li><b>${esc(t.trigger)}</b> &rarr; ${esc(t.reply)}
         <button class="btn btn-ghost" onclick="removeTemplate(${i})">Delete</button></li>`).join('');
}

async function addTemplate() {
    const trigger = document.getElementById('trigger').value.trim();
    const reply = document.getElementById('reply').value.trim();
    if (!trigger || !reply) return;
    await post('/templates', {trigger, reply});
    document.getElementById('trigger').value = '';
    document.getElementById('reply').value = '';
    loadTemplates();
}

async function removeTemplate(index) {
    await api('/templates/' + index, {method: 'DELETE'});
    loadTemplates();
}

const personaFields = ['brand', 'address', 'tone', 'extra_instructions'];

async function loadPersona() {
    const p = await api('/persona');
    personaFields.forEach(f => document.getElementById(f).value = p[f] || '');
}

async function savePersona() {
    const body = {};
    personaFields.forEach(f => body[f] = document.getElementById(f).value);
    await post('/persona', body);
}

async function loadConversations() {
    const convs = Object.values(await api('/conversations'))
        .sort((a, b) => new Date(b.lastMessageTime) - new Date(a.lastMessageTime));
    document.getElementById('conversations').innerHTML = convs.map(c =>
        `<li onclick="showConversation('${esc(c.phone)}')"><b>${esc(c.phone)}</b> (${c.messageCount})
         <small>${esc(c.lastMessage)}</small></li>`).join('');
}

async function showConversation(phone) {
    const detail = await api('/conversations/' + encodeURIComponent(phone));
    document.getElementById('history').innerHTML = detail.history.map(m =>
        `<li class="turn-${m.role}">${esc(m.content)}</li>`).join('');
}

async function clearConversations() {
    if (!confirm('Delete all conversation history?')) return;
    await api('/conversations', {method: 'DELETE'});
    document.getElementById('history').innerHTML = '';
    loadConversations();
}

async function requestQr() { await post('/request-qr'); loadStatus(); }

async function logout() {
    if (!confirm('Log out of WhatsApp? The server will stop and must be restarted.')) return;
    await post('/logout');
}

function connect() {
    const ws = new WebSocket((location.protocol === 'https:' ? 'wss://' : 'ws://') + location.host + '/ws');
    ws.onopen = () => ws.send(JSON.stringify({action: 'get_qr'}));
    ws.onmessage = e => {
        const {event, data} = JSON.parse(e.data);
        if (event === 'status') setStatus(data.connectionState, data.hasQr);
        if (event === 'qr_code_updated') showQr(data);
        if (event === 'authenticated') setStatus('authenticated', false);
        if (event === 'ready') setStatus('ready', false);
        if (event === 'disconnected') setStatus('disconnected', false);
        if (event === 'message_exchanged') loadConversations();
    };
    ws.onclose = () => setTimeout(connect, 3000);
}

loadStatus(); loadTemplates(); loadPersona(); loadConversations(); connect();
"""


def render_dashboard() -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>WhatsApp AI Bridge</title>
    <style>{SHARED_CSS}</style>
</head>
<body>
    <div class="grid">
        <div class="card">
            <h2>WhatsApp <span id="state" class="badge">initializing</span></h2>
            <button class="btn" onclick="requestQr()">Request QR</button>
            <button class="btn btn-ghost" onclick="logout()">Log out</button>
            <div id="qr"></div>
        </div>
        <div class="card">
            <h2>Reply Templates</h2>
            <input type="text" id="trigger" placeholder="Trigger (e.g. merhaba)">
            <input type="text" id="reply" placeholder="Reply">
            <button class="btn" onclick="addTemplate()">Add</button>
            <ul id="templates"></ul>
        </div>
        <div class="card">
            <h2>Persona</h2>
            <input type="text" id="brand" placeholder="Brand">
            <input type="text" id="address" placeholder="Address">
            <input type="text" id="tone" placeholder="Tone">
            <textarea id="extra_instructions" rows="3" placeholder="Extra instructions"></textarea>
            <button class="btn" onclick="savePersona()">Save</button>
        </div>
        <div class="card">
            <h2>Conversations
                <button class="btn btn-ghost" onclick="clearConversations()">Clear all</button>
            </h2>
            <ul id="conversations"></ul>
            <ul id="history"></ul>
        </div>
    </div>
    <script>{DASHBOARD_SCRIPT}</script>
</body>
</html>"""
